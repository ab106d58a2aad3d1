"""
Tests for the outward-facing side effects: archives, webhook and logging.

Tests cover:
- save_outputs writes a dated CSV with sheet headers
- post_to_webhook payload, skip without URL, and failure handling
- setup_logger writes to a rotating file under the given directory
- Log level names resolved, unknown names fall back to INFO
"""
import logging
from datetime import date
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
import requests

from inventory_ledger import data_handler
from inventory_ledger.logger import resolve_level, setup_logger
from inventory_ledger.schemas import ReportRow


def sample_rows():
    return [
        ReportRow(base_product="Lemon", inventory_yesterday=20, purchases_today=16,
                  sales_today=3, inventory_today_estimated=33, stock_real_user_entered=30,
                  discrepancy=-3),
        ReportRow(base_product="Potato", inventory_today_estimated=31),
    ]


class TestSaveOutputs:
    def test_dated_csv(self, output_dir):
        path = data_handler.save_outputs(
            sample_rows(), ReportRow, day=date(2026, 10, 19), output_dir=output_dir
        )
        assert path == output_dir / "daily_report_2026-10-19.csv"

        archived = pd.read_csv(path, keep_default_na=False, dtype=str)
        assert list(archived.columns)[:2] == ["Base Product", "Inventory Yesterday"]
        assert list(archived["Real Stock"]) == ["30.0", ""]

    def test_custom_filename(self, output_dir):
        path = data_handler.save_outputs(
            sample_rows(), ReportRow, day=date(2026, 10, 19),
            output_dir=output_dir, filename_base="close",
        )
        assert path.name == "close_2026-10-19.csv"


class TestPostToWebhook:
    def test_payload(self):
        response = MagicMock()
        with patch("inventory_ledger.data_handler.requests.post", return_value=response) as post:
            ok = data_handler.post_to_webhook(
                sample_rows(), {"date": "2026-10-19"}, "reconciliation",
                webhook_url="https://hooks.example.test/inventory",
            )

        assert ok
        payload = post.call_args.kwargs["json"]
        assert payload["reportType"] == "reconciliation"
        assert payload["metadata"] == {"date": "2026-10-19"}
        assert payload["reportData"][0]["Base Product"] == "Lemon"
        assert post.call_args.kwargs["timeout"] == 15

    def test_no_url_skips(self):
        with patch("inventory_ledger.data_handler.settings.WEBHOOK_URL", None), \
                patch("inventory_ledger.data_handler.requests.post") as post:
            assert not data_handler.post_to_webhook(sample_rows(), {}, "day_close")
        post.assert_not_called()

    def test_failure_is_reported_not_raised(self):
        with patch(
            "inventory_ledger.data_handler.requests.post",
            side_effect=requests.exceptions.ConnectionError("down"),
        ):
            assert not data_handler.post_to_webhook(
                sample_rows(), {}, "day_close", webhook_url="https://hooks.example.test/x"
            )


def test_setup_logger_writes_file(tmp_path):
    logger = setup_logger("inventory_ledger.test_logger", log_dir=tmp_path)
    logger.info("hello ledger")
    for handler in logger.handlers:
        handler.flush()

    assert "hello ledger" in (tmp_path / "app.log").read_text(encoding="utf-8")

    # a second call does not stack handlers
    assert setup_logger("inventory_ledger.test_logger", log_dir=tmp_path) is logger
    assert len(logger.handlers) == 2

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def test_setup_logger_level_from_name(tmp_path):
    logger = setup_logger(
        "inventory_ledger.test_debug",
        log_level="debug",
        log_dir=tmp_path,
        log_filename="day_close.log",
    )
    logger.debug("details")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert "details" in (tmp_path / "day_close.log").read_text(encoding="utf-8")
    assert logging.getLogger("urllib3").level == logging.WARNING

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (logging.WARNING, logging.WARNING),
        ("error", logging.ERROR),
        (" Debug ", logging.DEBUG),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(raw, expected):
    assert resolve_level(raw) == expected
