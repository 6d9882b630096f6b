"""Unit tests for structured logging."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest

from ai_workflow_orchestrator.core.config import OrchestratorConfig
from ai_workflow_orchestrator.core.logging import JsonFormatter, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_json_formatter_lifts_correlation_keys() -> None:
    record = logging.LogRecord(
        name="ai_workflow_orchestrator.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Step completed",
        args=(),
        exc_info=None,
    )
    record.workflow_id = "wf-1"
    record.step = "analyze"
    record.duration_ms = 12.5

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "ai_workflow_orchestrator.test"
    assert payload["message"] == "Step completed"
    assert payload["workflow_id"] == "wf-1"
    assert payload["step"] == "analyze"
    assert payload["extra"] == {"duration_ms": 12.5}
    assert "provider_id" not in payload


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.getLogger("x").makeRecord(
            "x", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info()
        )

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exception"]


def test_json_formatter_includes_stack_info() -> None:
    record = logging.getLogger("x").makeRecord("x", logging.WARNING, __file__, 1, "slow", (), None)
    record.stack_info = "Stack (most recent call last):\n  frame"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["stack"].endswith("frame")
    assert "exception" not in payload


def test_configure_logging_writes_json_lines_to_stream() -> None:
    stream = io.StringIO()
    configure_logging("INFO", stream=stream)

    logging.getLogger("ai_workflow_orchestrator.demo").info(
        "Recorded provider call", extra={"provider_id": "openai"}
    )

    line = stream.getvalue().strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["message"] == "Recorded provider call"
    assert payload["provider_id"] == "openai"
    assert "extra" not in payload


def test_configure_logging_quiets_sdk_loggers() -> None:
    configure_logging("DEBUG", stream=io.StringIO())

    assert logging.getLogger("openai").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_text_mode() -> None:
    stream = io.StringIO()
    OrchestratorConfig(json_logs=False, log_level="WARNING").setup_logging(stream=stream)

    logging.getLogger("ai_workflow_orchestrator.demo").warning("plain text")

    output = stream.getvalue()
    assert "plain text" in output
    assert not output.lstrip().startswith("{")
