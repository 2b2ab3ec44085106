"""Console output for askmd commands."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple, Union
from urllib.parse import urlparse

from rich.console import Console
from rich.markup import escape

from .session_log import log_error, log_info, log_warn


def truncate_url(url: str, max_len: int) -> str:
    """Shorten a URL for display, keeping the host visible."""
    if len(url) <= max_len:
        return url
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        prefix = f"{parsed.scheme}://{parsed.netloc}"
        path = parsed.path + (f"?{parsed.query}" if parsed.query else "")
        room = max_len - len(prefix) - 3
        if room > 10:
            return f"{prefix}{path[:room]}..."
    return f"{url[: max_len - 3]}..."


class Output:
    """Status lines on a rich Console; warnings are mirrored to the debug log."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def success(self, msg: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(msg)}")
        log_info("output", "success", msg)

    def warning(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {escape(msg)}")
        log_warn("output", "warning", msg)

    def error(self, msg: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(msg)}")
        log_error("output", "error", msg)

    def info(self, msg: str = "") -> None:
        self.console.print(escape(msg))

    def hint(self, msg: str) -> None:
        self.console.print(f"[dim]{escape(msg)}[/dim]")

    def fetch_start(self, url: str) -> None:
        self.console.print(f"[blue]↓[/blue] Fetching [dim]{escape(truncate_url(url, 60))}[/dim]...")

    def fetch_success(self, url: str, chars: Optional[int] = None) -> None:
        size = f" [dim]({-(-chars // 1000)}k chars)[/dim]" if chars else ""
        self.console.print(f"[green]✓[/green] {escape(truncate_url(url, 50))}{size}")

    def fetch_error(self, url: str, error: str) -> None:
        self.console.print(
            f"[red]✗[/red] {escape(truncate_url(url, 50))} [dim]-[/dim] [red]{escape(error)}[/red]"
        )
        log_warn("output", "fetch.error", {"url": url, "error": error})

    def refresh_start(self, ref: str) -> None:
        self.console.print(f"[blue]↓[/blue] Refreshing [dim]{escape(ref)}[/dim]...")

    def refresh_success(self, ref: str, detail: Optional[str] = None) -> None:
        extra = f" [dim]({escape(detail)})[/dim]" if detail else ""
        self.console.print(f"[green]✓[/green] {escape(ref)}{extra}")

    def meta(self, items: Iterable[Tuple[str, Union[str, int]]]) -> None:
        parts = [
            f"[dim]{escape(key)}:[/dim] {value:,}" if isinstance(value, int) else f"[dim]{escape(key)}:[/dim] {escape(value)}"
            for key, value in items
        ]
        self.console.print("  " + "[dim]  ·  [/dim]".join(parts))

    def progress(self, msg: str) -> None:
        self.console.file.write(f"\r\x1b[K{msg}")
        self.console.file.flush()

    def clear_line(self) -> None:
        self.console.file.write("\r\x1b[K")
        self.console.file.flush()


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"
