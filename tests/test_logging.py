"""
Tests for azura_pos/utils/logging.py and azura_pos/config.py.
"""
import json
import sys
import logging

from azura_pos.config import Settings
from azura_pos.utils.logging import (
    StructuredJsonFormatter,
    configure_structured_logging,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


def _record(msg="Loyverse sale processed", level=logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="azura_pos.api.loyverse_webhook",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationId:
    def test_generate_is_hex_uuid(self):
        cid = generate_correlation_id()
        assert len(cid) == 32
        int(cid, 16)

    def test_set_and_get(self):
        set_correlation_id("cid-abc")
        assert get_correlation_id() == "cid-abc"


class TestStructuredJsonFormatter:
    def test_formats_single_json_line(self):
        set_correlation_id("cid-json")
        line = StructuredJsonFormatter().format(_record())

        entry = json.loads(line)
        assert entry["level"] == "INFO"
        assert entry["module"] == "azura_pos.api.loyverse_webhook"
        assert entry["message"] == "Loyverse sale processed"
        assert entry["correlation_id"] == "cid-json"
        assert entry["timestamp"].endswith("Z")

    def test_includes_known_extra_fields(self):
        line = StructuredJsonFormatter().format(
            _record(receipt_number="1-1001", sale_id="s-1", unrelated="x")
        )

        entry = json.loads(line)
        assert entry["receipt_number"] == "1-1001"
        assert entry["sale_id"] == "s-1"
        assert "unrelated" not in entry

    def test_includes_exception(self):
        try:
            raise ValueError("bad receipt")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(StructuredJsonFormatter().format(record))
        assert "ValueError: bad receipt" in entry["exception"]


class TestConfigureStructuredLogging:
    def test_installs_single_json_handler(self):
        configure_structured_logging("DEBUG")
        configure_structured_logging("WARNING")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredJsonFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_unknown_level_defaults_to_info(self):
        configure_structured_logging("chatty")
        assert logging.getLogger().level == logging.INFO


class TestSettings:
    def test_defaults(self):
        settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
        assert settings.pos_payment_method == "Loyverse"
        assert settings.pos_default_category == "Geral"
        assert settings.sale_processor == "procedure"
        assert settings.loyverse_enforce_signature is False

    def test_cors_origins_split(self):
        settings = Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            allowed_origins="https://a.example, https://b.example,",
        )
        assert settings.cors_origins == ["https://a.example", "https://b.example"]
