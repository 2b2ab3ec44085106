"""Fetch [[https://...]] references and reduce them to Markdown text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from html import unescape
from html.parser import HTMLParser
from typing import Optional

import httpx

from . import __version__
from .errors import FetchError


LARGE_CONTENT_CHARS = 20_000

SKIP_TAGS = {"script", "style", "noscript", "nav", "footer", "header", "aside", "form", "svg"}
BLOCK_TAGS = {"p", "div", "tr", "table", "section", "article", "blockquote"}
HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}


def is_url(ref: str) -> bool:
    return ref.startswith("http://") or ref.startswith("https://")


@dataclass(frozen=True)
class UrlContent:
    title: Optional[str]
    content: str


class _HtmlMarkdownExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self._chunks: list[str] = []
        self._skip_depth = 0
        self._in_title = False
        self._in_pre = False
        self.title: Optional[str] = None

    def handle_starttag(self, tag: str, attrs) -> None:  # type: ignore[override]
        tag = tag.lower()
        if tag == "title":
            self._in_title = True
            return
        if tag in SKIP_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth:
            return
        if tag in HEADING_TAGS:
            self._chunks.append("\n\n" + "#" * HEADING_TAGS[tag] + " ")
        elif tag == "li":
            self._chunks.append("\n- ")
        elif tag == "pre":
            self._in_pre = True
            self._chunks.append("\n\n```\n")
        elif tag == "br":
            self._chunks.append("\n")
        elif tag in BLOCK_TAGS:
            self._chunks.append("\n\n")

    def handle_endtag(self, tag: str) -> None:  # type: ignore[override]
        tag = tag.lower()
        if tag == "title":
            self._in_title = False
            return
        if tag in SKIP_TAGS:
            if self._skip_depth:
                self._skip_depth -= 1
            return
        if self._skip_depth:
            return
        if tag == "pre":
            self._in_pre = False
            self._chunks.append("\n```\n\n")
        elif tag in HEADING_TAGS or tag in BLOCK_TAGS:
            self._chunks.append("\n\n")

    def handle_data(self, data: str) -> None:  # type: ignore[override]
        if self._in_title:
            text = unescape(data).strip()
            if text and not self.title:
                self.title = text
            return
        if self._skip_depth:
            return
        text = unescape(data)
        if self._in_pre:
            self._chunks.append(text)
        elif text.strip():
            self._chunks.append(re.sub(r"\s+", " ", text))

    def get_text(self) -> str:
        raw = "".join(self._chunks)
        raw = raw.replace("\r\n", "\n").replace("\r", "\n")
        raw = re.sub(r"[ \t]+\n", "\n", raw)
        raw = re.sub(r"\n{3,}", "\n\n", raw)
        return raw.strip()


def html_to_markdown(html: str) -> UrlContent:
    parser = _HtmlMarkdownExtractor()
    parser.feed(html)
    parser.close()
    return UrlContent(title=parser.title, content=parser.get_text())


def fetch_url(url: str, *, timeout: float = 30.0) -> UrlContent:
    """GET url and convert the response body by content type."""
    headers = {
        "User-Agent": f"Mozilla/5.0 (compatible; askmd/{__version__})",
        "Accept": "text/html,application/xhtml+xml,text/plain,text/markdown",
    }
    try:
        with httpx.Client(follow_redirects=True, timeout=timeout) as client:
            resp = client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        raise FetchError(url, str(exc) or type(exc).__name__) from exc

    if resp.status_code >= 400:
        raise FetchError(url, f"{resp.status_code} {resp.reason_phrase}")

    content_type = resp.headers.get("content-type", "")
    text = resp.text
    if "text/plain" in content_type or "text/markdown" in content_type:
        return UrlContent(title=None, content=text)
    if "text/html" in content_type or "application/xhtml" in content_type:
        return html_to_markdown(text)
    return UrlContent(title=None, content=text)
