"""Rich logging integration for ccrequery.

Provides a Rich-based console handler with correlation ID support and a
formatter that strips Rich markup for file output.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class CorrelationRichHandler(RichHandler):
    """RichHandler with correlation ID support and highlighted requery actions.

    Method names are colored pink (#ff69b4), requery action text is colored
    bright cyan and QUERY_TYPE style words are colored orange.
    """

    LEVEL_COLORS: dict[str, str] = {
        "DEBUG": "dim",
        "INFO": "cyan",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold red",
    }

    ACTION_PATTERNS = [
        r"REQUERY:",
        r"Sent a broadcast requery",
        r"Started DHT lookup",
        r"DHT lookup finished",
        r"no stable connections",
    ]

    def __init__(
        self,
        *args: Any,
        console: Console | None = None,
        show_colors: bool = True,
        **kwargs: Any,
    ) -> None:
        """Initialize RichHandler with correlation ID support.

        Args:
            *args: Positional arguments for RichHandler
            console: Optional Rich Console instance
            show_colors: Whether to colorize action text and method names
            **kwargs: Keyword arguments for RichHandler

        """
        if console is None:
            console = Console(file=sys.stdout, markup=True, color_system="auto")

        self.show_colors = show_colors

        # RichHandler does not render markup unless asked to
        if "markup" not in kwargs:
            kwargs["markup"] = True

        super().__init__(*args, console=console, **kwargs)

    def _colorize_action_text(self, message: str) -> str:
        """Colorize action text in bright cyan and ALL_CAPS words in orange."""
        for pattern in self.ACTION_PATTERNS:
            for match in reversed(list(re.finditer(pattern, message))):
                start, end = match.span()
                message = (
                    message[:start]
                    + f"[bright_cyan]{message[start:end]}[/bright_cyan]"
                    + message[end:]
                )

        for match in reversed(list(re.finditer(r"\b[A-Z][A-Z_]*[A-Z]\b", message))):
            start, end = match.span()
            # Skip words already wrapped by the pass above
            if message[max(0, start - 13) : start].endswith("[bright_cyan]"):
                continue
            message = (
                message[:start]
                + f"[orange1]{message[start:end]}[/orange1]"
                + message[end:]
            )
        return message

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record with correlation ID and colorized text."""
        try:
            if not hasattr(record, "correlation_id"):
                from ccrequery.utils.logging_config import correlation_id

                record.correlation_id = correlation_id.get() or "no-correlation-id"

            if self.show_colors:
                message = self._colorize_action_text(
                    escape_rich_markup(record.getMessage())
                )
                func_name = getattr(record, "funcName", None)
                if func_name:
                    message = f"[#ff69b4]{func_name}[/#ff69b4] {message}"
                # Other handlers share the record; render from a copy
                record = logging.makeLogRecord(record.__dict__)
                record.msg = message
                record.args = ()

            super().emit(record)
        except Exception:
            self.handleError(record)

    def handleError(self, record: logging.LogRecord) -> None:
        """Report logging failures on stderr without re-entering logging."""
        try:
            sys.stderr.write(
                f"Logging error (suppressed to prevent circular errors): "
                f"{record.levelname} {record.name}: {record.getMessage()}\n"
            )
            sys.stderr.flush()
        except Exception:  # nosec B110 - nothing left to report to
            pass


def escape_rich_markup(text: str) -> str:
    """Escape square brackets so user data is not parsed as markup."""
    return text.replace("[", r"\[")


def strip_rich_markup(text: str) -> str:
    """Strip Rich markup from text for file logging.

    Args:
        text: Text with Rich markup

    Returns:
        Text without Rich markup

    """
    # Matches [tag], [tag=value] and [/tag]
    text = re.sub(r"(?<!\\)\[/?[^\]\[]+\]", "", text)
    return text.replace(r"\[", "[")


class FileFormatter(logging.Formatter):
    """Formatter for file output that strips Rich markup."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, stripping Rich markup for file output."""
        return strip_rich_markup(super().format(record))


def create_rich_handler(
    console: Console | None = None,
    level: int | str = logging.INFO,
    show_path: bool = False,
    rich_tracebacks: bool = True,
    show_colors: bool = True,
) -> logging.Handler:
    """Create a RichHandler with correlation ID support.

    Args:
        console: Optional Rich Console instance
        level: Log level
        show_path: Whether to show file paths in log output
        rich_tracebacks: Whether to use rich tracebacks
        show_colors: Whether to colorize action text

    Returns:
        Configured RichHandler instance

    """
    return CorrelationRichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
        show_colors=show_colors,
    )
