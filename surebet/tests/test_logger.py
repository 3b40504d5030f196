"""Tests for the logging processors."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from decimal import Decimal

import pytest

from surebet.utils.logger import _mask_sensitive, _render_decimals, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestProcessors:
    def test_decimals_rendered_exactly(self) -> None:
        event = {
            "event": "ticket_confirmed",
            "projected_profit": Decimal("7.56"),
            "stakes": [Decimal("100"), Decimal("102.44")],
            "shortfalls": {"bk1": Decimal("0.01")},
            "legs": 2,
        }
        rendered = _render_decimals(None, "info", event)
        assert rendered["projected_profit"] == "7.56"
        assert rendered["stakes"] == ["100", "102.44"]
        assert rendered["shortfalls"] == {"bk1": "0.01"}
        assert rendered["legs"] == 2

    def test_sensitive_keys_masked(self) -> None:
        event = {"event": "x", "partner_name": "Ana", "api_key": "k", "bookmaker_id": "bet365"}
        masked = _mask_sensitive(None, "info", event)
        assert masked["partner_name"] == "***REDACTED***"
        assert masked["api_key"] == "***REDACTED***"
        assert masked["bookmaker_id"] == "bet365"


class TestSetup:
    def test_root_handler_and_level(self) -> None:
        setup_logging("DEBUG", json_output=True)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_unknown_level_defaults_to_info(self) -> None:
        setup_logging("chatty", json_output=False)
        assert logging.getLogger().level == logging.INFO

    def test_get_logger(self) -> None:
        assert get_logger("surebet_test") is not None
