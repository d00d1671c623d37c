"""
Transient user notifications.

Deed table and property operations report their outcome once, the way a UI
toast would: success, info, or error. The manager never retries on its own;
an error notification is the signal for the user to try again.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from rich.console import Console

from titledraft.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    """Default notifier: notifications become log lines."""

    def __init__(self, logger_name: str = "titledraft.notify") -> None:
        self._log = get_logger(logger_name)

    def success(self, message: str) -> None:
        self._log.info(message, extra={"notification": "success"})

    def info(self, message: str) -> None:
        self._log.info(message, extra={"notification": "info"})

    def error(self, message: str) -> None:
        self._log.error(message, extra={"notification": "error"})


class ConsoleNotifier:
    """Prints notifications to a rich console (used by the CLI)."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(stderr=True)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✔[/green] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]✖ {message}[/bold red]")


__all__ = ["Notifier", "LogNotifier", "ConsoleNotifier"]
