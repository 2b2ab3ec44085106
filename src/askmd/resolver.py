"""Resolve a single [[reference]] into marker-wrapped inline content."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .config import ExpansionOptions
from .errors import BinaryFile, FetchError, FileNotFound, FilesystemError, ReferenceResolutionError
from .escaping import escape_brackets, fence_for
from .filter import filter_content, should_filter
from .languages import language_for
from .output import Output
from .patterns import should_exclude
from .session_log import log_warn
from .url import LARGE_CONTENT_CHARS, UrlContent, fetch_url, is_url

BINARY_SNIFF_BYTES = 512

RECURSIVE_SUFFIX = "/**/"


@dataclass(frozen=True)
class Resolution:
    text: str
    count: int


def _is_hidden(path: Path, base: Path) -> bool:
    """Dotfiles and anything under a dot directory below base are never listed."""
    return any(part.startswith(".") for part in path.relative_to(base).parts)


def split_directory_ref(ref: str) -> tuple[str, bool]:
    """Return (directory, recursive) for a `dir/` or `dir/**/` payload."""
    recursive = ref.endswith(RECURSIVE_SUFFIX)
    directory = ref[: -len(RECURSIVE_SUFFIX)] if recursive else ref.rstrip("/")
    return directory or ".", recursive


class ReferenceResolver:
    """Resolves [[file]], [[dir/]], [[dir/**/]] and [[url]] payloads.

    Paths are resolved against ``root``. Collaborators (fetcher, filter,
    language lookup, output sink) are injectable for tests.
    """

    def __init__(
        self,
        root: Path,
        options: ExpansionOptions,
        *,
        fetcher: Callable[[str], UrlContent] = fetch_url,
        content_filter: Callable[[str, str], str] = filter_content,
        language_for: Callable[[str], str] = language_for,
        output: Optional[Output] = None,
    ) -> None:
        self.root = Path(root)
        self.options = options
        self.fetcher = fetcher
        self.content_filter = content_filter
        self.language_for = language_for
        self.output = output

    def resolve(self, ref: str) -> Resolution:
        if is_url(ref):
            return self.expand_url(ref)
        if ref.endswith(RECURSIVE_SUFFIX) or ref.endswith("/"):
            directory, recursive = split_directory_ref(ref)
            return self.expand_directory(directory, recursive)
        if (self.root / ref).is_dir():
            return self.expand_directory(ref, False)
        return self.expand_file(ref)

    # files

    def resolve_file_path(self, ref: str) -> str:
        """Relative path of the file, falling back to a case-insensitive name match."""
        if (self.root / ref).is_file():
            return ref
        rel = Path(ref)
        parent = self.root / rel.parent
        wanted = rel.name.lower()
        try:
            entries = sorted(parent.iterdir())
        except OSError:
            raise FileNotFound(ref) from None
        for entry in entries:
            if entry.name.lower() == wanted and entry.is_file():
                return (rel.parent / entry.name).as_posix()
        raise FileNotFound(ref)

    def expand_file(self, ref: str) -> Resolution:
        rel_path = self.resolve_file_path(ref)
        path = self.root / rel_path
        try:
            with path.open("rb") as f:
                if b"\0" in f.read(BINARY_SNIFF_BYTES):
                    raise BinaryFile(ref)
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise FilesystemError(ref, exc.strerror or str(exc)) from exc

        if should_filter(self.options):
            try:
                content = self.content_filter(content, rel_path)
            except Exception as exc:  # noqa: BLE001
                raise ReferenceResolutionError(ref, f"Filter failed: {exc}") from exc

        display = Path(rel_path).as_posix()
        content = escape_brackets(content)
        fence = fence_for(content)
        lang = self.language_for(display)
        text = (
            f"<!-- file: {display} -->\n"
            f"### {display}\n"
            f"{fence}{lang}\n{content}\n{fence}\n"
            "<!-- /file -->"
        )
        return Resolution(text, 1)

    # directories

    def expand_directory(self, directory: str, recursive: bool) -> Resolution:
        base = self.root / directory
        if not base.is_dir():
            raise FileNotFound(f"{directory}/", "Directory not found")
        exclude = self.options.exclude

        has_subdirs = False
        if not recursive:
            for entry in sorted(base.iterdir()):
                if _is_hidden(entry, base):
                    continue
                if entry.is_dir() and not should_exclude(self._relative(entry), exclude):
                    has_subdirs = True
                    break

        candidates = base.glob("**/*" if recursive else "*")
        sections: List[str] = []
        for entry in sorted(candidates, key=lambda p: p.as_posix()):
            if not entry.is_file() or _is_hidden(entry, base):
                continue
            rel = self._relative(entry)
            if should_exclude(rel, exclude):
                continue
            try:
                sections.append(self.expand_file(rel).text)
            except ReferenceResolutionError:
                continue

        label = directory.rstrip("/") or "."
        if not sections:
            if has_subdirs:
                hint = escape_brackets(f"[[{label}/**/]]")
                return Resolution(
                    f"\n### {label}/\n\n*(contains only subdirectories - use {hint} for recursive)*\n",
                    0,
                )
            return Resolution(f"\n### {label}/\n\n*(empty directory)*\n", 0)

        marker = RECURSIVE_SUFFIX if recursive else "/"
        body = "\n\n".join(sections)
        return Resolution(f"<!-- dir: {label}{marker} -->\n{body}\n<!-- /dir -->", len(sections))

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    # urls

    def _report_fetch_error(self, url: str, message: str) -> None:
        if self.output:
            self.output.fetch_error(url, message)

    def expand_url(self, url: str) -> Resolution:
        if not self.options.web:
            return Resolution(f"[[{url}]]", 0)
        if self.output:
            self.output.fetch_start(url)
        try:
            fetched = self.fetcher(url)
        except ReferenceResolutionError as exc:
            self._report_fetch_error(url, exc.message)
            raise
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or type(exc).__name__
            self._report_fetch_error(url, message)
            raise FetchError(url, message) from exc

        body = fetched.content.strip()
        if len(body) > LARGE_CONTENT_CHARS:
            message = f"Large page: {len(body):,} chars from {url} (consider a more specific URL)"
            if self.output:
                self.output.warning(message)
            else:
                log_warn("resolver", "url.large", message)
        if self.output:
            self.output.fetch_success(url, len(body))

        body = escape_brackets(body)
        heading = f"# {fetched.title.strip()}\n\n" if fetched.title and fetched.title.strip() else ""
        return Resolution(f"<!-- url: {url} -->\n\n{heading}{body}\n\n<!-- /url -->", 1)
