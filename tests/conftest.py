"""
Test configuration and fixtures for the inventory ledger test suite.

Provides:
- A CSV-backed store in a temporary directory (isolated per test)
- A reconciliation config pinned to America/Santiago
- A seeded store with a small catalog, orders, acquisitions and ledger
- Factory functions for writing sheets
"""
from datetime import datetime

import pandas as pd
import pytest

from inventory_ledger.config import ReconciliationConfig
from inventory_ledger.store import CsvStore

TZ = "America/Santiago"

# "Today" for every test: 19 Oct 2026, 18:00 local time
NOW = datetime(2026, 10, 19, 18, 0)


CATALOG_HEADERS = [
    "Product Name",
    "Base Product",
    "Acquisition Format",
    "Acquisition Quantity",
    "Acquisition Unit",
    "Category",
    "Sale Factor",
    "Sale Unit",
]
ORDER_HEADERS = ["Order ID", "Order Date", "Order State", "Product Name", "Quantity"]
ACQUISITION_HEADERS = ["Base Product", "Format", "Quantity"]
LEDGER_HEADERS = ["Timestamp", "Base Product", "Estimated Quantity", "Real Quantity", "Unit"]


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

def write_sheet(store: CsvStore, sheet: str, headers: list[str], rows: list[list]) -> None:
    """Write a sheet the way a person would have typed it: every cell a string."""
    frame = pd.DataFrame([[str(cell) for cell in row] for row in rows], columns=headers)
    store.write(sheet, frame)


def catalog_frame(rows: list[list]) -> pd.DataFrame:
    return pd.DataFrame([[str(c) for c in row] for row in rows], columns=CATALOG_HEADERS)


def order_frame(rows: list[list], headers: list[str] = ORDER_HEADERS) -> pd.DataFrame:
    return pd.DataFrame([[str(c) for c in row] for row in rows], columns=headers)


def ledger_frame(rows: list[list]) -> pd.DataFrame:
    return pd.DataFrame([[str(c) for c in row] for row in rows], columns=LEDGER_HEADERS)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def config() -> ReconciliationConfig:
    return ReconciliationConfig(
        timezone=TZ,
        allowed_order_states=["Confirmado", "Entregado"],
        ledger_retention=5,
    )


@pytest.fixture()
def store(tmp_path) -> CsvStore:
    return CsvStore(tmp_path / "data")


@pytest.fixture()
def output_dir(tmp_path):
    return tmp_path / "output"


@pytest.fixture()
def seeded_store(store, config) -> CsvStore:
    """
    Lemon: yesterday real 20, buys 2 boxes of 8 kg, sells 3 bags of 1 kg -> 33.
    Potato: yesterday estimate 10, buys 1 net of 25 kg, sells 2 nets of 2 kg -> 31.
    Garlic: catalog only, no activity -> 0.
    """
    write_sheet(
        store,
        config.catalog_sheet,
        CATALOG_HEADERS,
        [
            ["Lemon 1kg bag", "Lemon", "Box", "8", "kg", "Fruit", "1", "kg"],
            ["Potato 2kg net", "Potato", "Malla (25 kg)", "25", "kg", "Vegetables", "2", "kg"],
            ["Garlic", "garlic", "Trenza", "10", "unidad", "Vegetables", "1", "unidad"],
        ],
    )
    write_sheet(
        store,
        config.orders_sheet,
        ORDER_HEADERS,
        [
            ["1", "2026-10-19 10:30", "Confirmado", "Lemon 1kg bag", "3"],
            ["2", "2026-10-19 11:00", "Confirmado", "Lemon 1kg bag", "E5"],
            ["3", "2026-10-18 11:00", "Confirmado", "Lemon 1kg bag", "4"],
            ["4", "2026-10-19 12:00", "Cancelado", "Lemon 1kg bag", "7"],
            ["5", "2026-10-19 12:30", "Entregado", "Potato 2kg net", "2"],
            ["6", "2026-10-19 13:00", "Entregado", "Mystery Item", "1"],
        ],
    )
    write_sheet(
        store,
        config.acquisitions_sheet,
        ACQUISITION_HEADERS,
        [
            ["Lemon", "Box", "2"],
            ["Potato", "Malla", "1"],
        ],
    )
    write_sheet(
        store,
        config.ledger_sheet,
        LEDGER_HEADERS,
        [
            ["2026-10-17T20:00:00-03:00", "Lemon", "18", "", "kg"],
            ["2026-10-18T20:00:00-03:00", "Lemon", "19", "20", "kg"],
            ["2026-10-18T20:00:00-03:00", "Potato", "10", "", "kg"],
        ],
    )
    return store
