"""Fence language tags for expanded files."""

from __future__ import annotations

from pathlib import PurePosixPath

LANGUAGES = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "go": "go",
    "rs": "rust",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "hpp": "cpp",
    "cc": "cpp",
    "java": "java",
    "kt": "kotlin",
    "scala": "scala",
    "cs": "csharp",
    "fs": "fsharp",
    "py": "python",
    "pyi": "python",
    "rb": "ruby",
    "php": "php",
    "pl": "perl",
    "lua": "lua",
    "sh": "bash",
    "bash": "bash",
    "zsh": "zsh",
    "fish": "fish",
    "ps1": "powershell",
    "swift": "swift",
    "m": "objectivec",
    "mm": "objectivec",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "xml": "xml",
    "ini": "ini",
    "cfg": "ini",
    "env": "bash",
    "md": "markdown",
    "mdx": "markdown",
    "html": "html",
    "htm": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "less": "less",
    "sql": "sql",
    "graphql": "graphql",
    "gql": "graphql",
    "proto": "protobuf",
    "vue": "vue",
    "svelte": "svelte",
    "tex": "latex",
    "r": "r",
    "jl": "julia",
    "ex": "elixir",
    "exs": "elixir",
    "erl": "erlang",
    "hs": "haskell",
    "clj": "clojure",
    "el": "lisp",
    "vim": "vim",
    "zig": "zig",
    "nim": "nim",
    "asm": "asm",
}

FILENAMES = {
    "makefile": "makefile",
    "gnumakefile": "makefile",
    "justfile": "just",
    "dockerfile": "dockerfile",
    "containerfile": "dockerfile",
    ".gitignore": "gitignore",
    ".gitattributes": "gitattributes",
    ".dockerignore": "dockerignore",
    ".env": "bash",
    ".envrc": "bash",
    ".bashrc": "bash",
    ".zshrc": "zsh",
    ".profile": "bash",
    "cmakelists.txt": "cmake",
    "build": "starlark",
    "build.bazel": "starlark",
    "workspace": "starlark",
    "cargo.lock": "toml",
    "go.mod": "gomod",
    "go.sum": "gosum",
    "tsconfig.json": "jsonc",
    "jsconfig.json": "jsonc",
    "gemfile": "ruby",
    "rakefile": "ruby",
    "requirements.txt": "text",
    "pipfile": "toml",
    "build.gradle": "gradle",
    "build.gradle.kts": "kotlin",
}


def language_for(path: str) -> str:
    """Fence tag for a path: known filenames first, then the extension."""
    name = PurePosixPath(path.replace("\\", "/")).name
    special = FILENAMES.get(name.lower())
    if special:
        return special
    dot = name.rfind(".")
    if dot <= 0:
        return "text"
    ext = name[dot + 1 :].lower()
    return LANGUAGES.get(ext, ext)
