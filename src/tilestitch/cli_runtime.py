"""Shared CLI runtime helpers: error type and logging setup."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["CLIAppError", "configure_logging"]


class CLIAppError(RuntimeError):
    """Raised when the CLI cannot complete its work."""

    def __init__(self, message: str, *, code: int = 1, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.rich_message = rich_message or message


def configure_logging(*, verbose: bool, quiet: bool, no_color: bool) -> logging.Handler:
    """Route log records through a rich handler at the level implied by the flags."""

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    console = Console(stderr=True, no_color=no_color, highlight=False)
    handler = RichHandler(console=console, show_path=verbose, rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
    return handler
