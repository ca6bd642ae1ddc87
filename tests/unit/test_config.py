"""Unit tests for settings, engine options and logging configuration"""

import json
import logging

from sqlalchemy.pool import StaticPool

from labintake.config import Settings
from labintake.database import engine_options
from labintake.observability.logging_config import JSONFormatter, RequestIDFilter, configure_logging
from labintake.observability.request_id import get_request_id, resolve_request_id, set_request_id


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.SUBMISSION_CODE_LENGTH == 4
        assert settings.ATTACHMENT_BUCKET == "submission-files"
        assert settings.DATABASE_URL.startswith("postgresql://")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SUBMISSION_CODE_LENGTH", "6")
        monkeypatch.setenv("MAX_FILES_PER_UPLOAD", "3")

        settings = Settings(_env_file=None)

        assert settings.SUBMISSION_CODE_LENGTH == 6
        assert settings.MAX_FILES_PER_UPLOAD == 3


class TestEngineOptions:
    def test_in_memory_sqlite_shares_one_connection(self):
        options = engine_options("sqlite://", Settings(_env_file=None))

        assert options["poolclass"] is StaticPool
        assert options["connect_args"] == {"check_same_thread": False}
        assert "pool_size" not in options

    def test_postgres_pool_from_settings(self):
        settings = Settings(_env_file=None, DB_POOL_SIZE=12, DB_MAX_OVERFLOW=3)

        options = engine_options("postgresql://u:p@db:5432/labintake", settings)

        assert options["pool_size"] == 12
        assert options["max_overflow"] == 3
        assert "poolclass" not in options


class TestRequestID:
    def test_well_formed_incoming_id_kept(self):
        assert resolve_request_id("trace-abc-123") == "trace-abc-123"

    def test_malformed_incoming_id_replaced(self):
        for incoming in (None, "", "has spaces", "x" * 200, "line\nbreak"):
            resolved = resolve_request_id(incoming)
            assert resolved != incoming
            assert len(resolved) == 36

    def test_set_and_get(self):
        set_request_id("req-456")
        assert get_request_id() == "req-456"


class TestJSONLogging:
    def make_record(self, **extra):
        record = logging.LogRecord("labintake.test", logging.INFO, __file__, 1, "Draft bound: id=%s", (7,), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_payload_carries_request_id_and_context(self):
        set_request_id("req-123")
        record = self.make_record(submission_id=7, group="script")
        RequestIDFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Draft bound: id=7"
        assert payload["request_id"] == "req-123"
        assert payload["submission_id"] == 7
        assert payload["group"] == "script"
        assert payload["level"] == "INFO"

    def test_empty_context_fields_omitted(self):
        payload = json.loads(JSONFormatter().format(self.make_record(actor_id=None)))

        assert "actor_id" not in payload
        assert "submission_id" not in payload

    def test_configure_logging_quiets_third_party(self):
        configure_logging(level="DEBUG", json_format=True)
        try:
            root = logging.getLogger()
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert logging.getLogger("botocore").level == logging.WARNING
        finally:
            configure_logging(level="WARNING", json_format=False)
