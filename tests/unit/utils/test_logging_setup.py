from __future__ import annotations

import io
import json
import logging
import sys

import pytest
from rich.console import Console

from ccrequery.models import LogLevel, ObservabilityConfig
from ccrequery.utils.logging_config import (
    CorrelationFilter,
    LoggingContext,
    StructuredFormatter,
    get_correlation_id,
    get_logger,
    log_exception,
    set_correlation_id,
    setup_logging,
)
from ccrequery.utils.rich_logging import (
    CorrelationRichHandler,
    FileFormatter,
    create_rich_handler,
    escape_rich_markup,
    strip_rich_markup,
)

pytestmark = [pytest.mark.unit]


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "ccrequery.requery.supervisor", logging.INFO, __file__, 10, msg, args, None,
        func="send_query",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_get_logger_namespaces_names():
    assert get_logger("requery").name == "ccrequery.requery"
    assert get_logger("ccrequery.cli").name == "ccrequery.cli"
    assert get_logger("ccrequery").name == "ccrequery"


def test_setup_logging_installs_rich_console_handler():
    setup_logging(ObservabilityConfig(log_level=LogLevel.DEBUG))

    package_logger = logging.getLogger("ccrequery")
    assert package_logger.propagate is False
    assert package_logger.level == logging.DEBUG
    assert any(isinstance(h, CorrelationRichHandler) for h in package_logger.handlers)


def test_structured_logging_writes_json_lines(capsys):
    setup_logging(ObservabilityConfig(structured_logging=True))
    set_correlation_id("corr-1")

    get_logger("requery").info("REQUERY: Sent a broadcast requery", extra={"key": "ab"})

    line = capsys.readouterr().out.strip().splitlines()[-1]
    entry = json.loads(line)
    assert entry["level"] == "INFO"
    assert entry["logger"] == "ccrequery.requery"
    assert entry["message"] == "REQUERY: Sent a broadcast requery"
    assert entry["correlation_id"] == "corr-1"
    assert entry["key"] == "ab"


def test_file_logging_strips_markup(tmp_path):
    log_file = tmp_path / "logs" / "requery.log"
    setup_logging(ObservabilityConfig(log_file=str(log_file)))

    get_logger("requery").info("lookup for [bold]abc[/bold] done")
    for handler in logging.getLogger("ccrequery").handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "INFO ccrequery.requery" in text
    assert "lookup for abc done" in text


def test_structured_formatter_includes_exception():
    try:
        raise ValueError("bad value")
    except ValueError:
        exc_info = sys.exc_info()
    record = _record("failed")
    record.exc_info = exc_info

    entry = json.loads(StructuredFormatter().format(record))

    assert "ValueError: bad value" in entry["exception"]


def test_correlation_filter_tags_records():
    set_correlation_id("corr-2")
    record = _record("hello")

    assert CorrelationFilter().filter(record) is True
    assert record.correlation_id == "corr-2"


def test_file_formatter_strips_markup():
    formatter = FileFormatter("%(message)s")

    assert formatter.format(_record("[cyan]REQUERY:[/cyan] done")) == "REQUERY: done"


def test_markup_helpers():
    assert escape_rich_markup("peer[1]") == r"peer\[1]"
    assert strip_rich_markup(r"[bold]hi[/bold] \[x]") == "hi [x]"


def test_rich_handler_colorizes_without_mutating_record():
    stream = io.StringIO()
    handler = create_rich_handler(console=Console(file=stream, width=200))
    record = _record("REQUERY: Sent a broadcast requery for %s", "abc")

    handler.emit(record)

    assert record.msg == "REQUERY: Sent a broadcast requery for %s"
    assert record.args == ("abc",)
    assert hasattr(record, "correlation_id")
    output = stream.getvalue()
    assert "Sent a broadcast requery for abc" in output
    assert "send_query" in output


def test_colorize_action_text():
    handler = CorrelationRichHandler(console=Console(file=io.StringIO()))

    colored = handler._colorize_action_text("REQUERY: lookup for DHT")

    assert colored.startswith("[bright_cyan]REQUERY:[/bright_cyan]")
    assert "[orange1]DHT[/orange1]" in colored
    assert "[orange1]REQUERY" not in colored


def test_plain_handler_when_colors_disabled():
    stream = io.StringIO()
    handler = create_rich_handler(
        console=Console(file=stream, width=200), show_colors=False
    )

    handler.emit(_record("plain message"))

    assert "plain" in stream.getvalue()


def test_logging_context_scopes_correlation_id(caplog):
    caplog.set_level(logging.DEBUG, logger="ccrequery")
    set_correlation_id("outer")

    with LoggingContext("stability_check", connections=3):
        inner = get_correlation_id()

    assert inner not in (None, "outer")
    assert get_correlation_id() == "outer"
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Starting stability_check") for m in messages)
    assert any(m.startswith("Completed stability_check") for m in messages)


def test_logging_context_logs_failure(caplog):
    caplog.set_level(logging.DEBUG, logger="ccrequery")

    with pytest.raises(RuntimeError):
        with LoggingContext("dispatch"):
            raise RuntimeError("boom")

    failures = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert failures
    assert "Failed dispatch" in failures[-1].getMessage()


def test_log_exception_attaches_traceback(caplog):
    logger = get_logger("tests")
    exc = ValueError("boom")

    log_exception(logger, exc, "Loading config")

    record = caplog.records[-1]
    assert record.getMessage() == "Loading config: boom"
    assert record.exc_info[1] is exc
