"""
Unit tests for ReconciliationConfig validation and settings loading.
"""
import pytest
from pydantic import ValidationError

from inventory_ledger import settings
from inventory_ledger.config import ReconciliationConfig


class TestReconciliationConfig:
    def test_defaults(self):
        config = ReconciliationConfig()
        assert config.ledger_retention == 5
        assert config.base_product_source == "order_column"
        assert config.purchase_strategy == "catalog_factor"
        assert config.allowed_order_states is None

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            ReconciliationConfig(timezone="Mars/Olympus_Mons")

    def test_retention_at_least_one(self):
        with pytest.raises(ValidationError):
            ReconciliationConfig(ledger_retention=0)

    def test_unknown_strategy(self):
        with pytest.raises(ValidationError):
            ReconciliationConfig(purchase_strategy="guess")

    def test_states_stripped(self):
        config = ReconciliationConfig(allowed_order_states=[" Confirmado ", "", "Pagado"])
        assert config.allowed_order_states == ["Confirmado", "Pagado"]


class TestFromSettings:
    def test_state_filter_enforced(self, monkeypatch):
        monkeypatch.setattr(settings, "ENFORCE_ORDER_STATES", True)
        monkeypatch.setattr(settings, "ALLOWED_ORDER_STATES", ["Confirmado", "Entregado"])
        monkeypatch.setattr(settings, "TIMEZONE", "America/Santiago")
        config = ReconciliationConfig.from_settings()
        assert config.allowed_order_states == ["Confirmado", "Entregado"]
        assert config.timezone == "America/Santiago"

    def test_state_filter_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "ENFORCE_ORDER_STATES", False)
        assert ReconciliationConfig.from_settings().allowed_order_states is None
