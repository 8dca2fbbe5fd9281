"""
Tests for run-context logging.

Usage:
    pytest tests/test_logging_config.py -v
"""

import json
import logging

import pytest

from src.data.config import LoggingConfig
from src.orchestrator.logging_config import (
    ContextTextFormatter,
    JSONFormatter,
    run_logger,
    setup_logging,
)


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestRunContextAdapter:

    def setup_method(self):
        self.handler = ListHandler()
        self.logger = logging.getLogger("tests.run_context")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self.logger.addHandler(self.handler)

    def teardown_method(self):
        self.logger.removeHandler(self.handler)

    def test_context_attached(self):
        run_logger(self.logger, run_id="run-1", product_id="p1").info("started")

        record = self.handler.records[0]
        assert record.run_id == "run-1"
        assert record.product_id == "p1"

    def test_bind_and_call_extra_merge(self):
        log = run_logger(self.logger, run_id="run-1", product_id="p1")

        log.bind(analysis_type="swot").info("done", extra={"duration": 1.5})

        record = self.handler.records[0]
        assert record.run_id == "run-1"
        assert record.analysis_type == "swot"
        assert record.duration == 1.5
        assert "analysis_type" not in log.extra

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            run_logger(self.logger, asin="B00X")


class TestFormatters:

    def _record(self, **context):
        record = logging.LogRecord("src.orchestrator", logging.INFO, __file__, 1, "hello", None, None)
        for key, value in context.items():
            setattr(record, key, value)
        return record

    def test_json_carries_context(self):
        line = JSONFormatter().format(self._record(run_id="abc", analysis_type="sentiment"))

        entry = json.loads(line)
        assert entry["msg"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["run_id"] == "abc"
        assert entry["analysis_type"] == "sentiment"
        assert "competitor_id" not in entry

    def test_text_appends_short_run_id(self):
        run_id = "0123456789abcdef"
        line = ContextTextFormatter().format(self._record(run_id=run_id, product_id="p1"))

        assert line.endswith("| hello [run_id=01234567 product_id=p1]")

    def test_text_without_context_unchanged(self):
        line = ContextTextFormatter().format(self._record())
        assert line.endswith("| hello")


class TestSetupLogging:

    def setup_method(self):
        self.root = logging.getLogger()
        self.saved = (self.root.level, list(self.root.handlers))

    def teardown_method(self):
        for handler in self.root.handlers:
            if handler not in self.saved[1]:
                handler.close()
        self.root.setLevel(self.saved[0])
        self.root.handlers[:] = self.saved[1]

    def test_json_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "analysis.log"

        setup_logging(LoggingConfig(level="INFO", log_file=str(log_file), json_logs=True))
        run_logger(logging.getLogger("src.test"), run_id="r1").info("run started")
        for handler in self.root.handlers:
            handler.flush()

        entries = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert entries[-1]["msg"] == "run started"
        assert entries[-1]["run_id"] == "r1"

    def test_level_override(self):
        setup_logging(LoggingConfig(level="WARNING"), level="DEBUG")

        assert self.root.level == logging.DEBUG
        assert logging.getLogger("openai").level == logging.WARNING
