"""
Reading and pruning the append-only stock ledger.

"Current stock" for a base product is its most recent entry by timestamp.
Entries sharing a timestamp are ordered by their position in the sheet, so
the row appended last wins.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .schemas import LedgerEntry, sheet_columns
from .utils import normalize_text, parse_number, parse_timestamp, to_float

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LatestStock:
    quantity: float
    unit: str
    timestamp: pd.Timestamp
    display_name: str
    from_real_count: bool


def _ordered(ledger: pd.DataFrame, tz: str, dayfirst: bool) -> pd.DataFrame:
    """Adds key/timestamp/sequence helper columns and sorts oldest first."""
    ordered = ledger.copy()
    ordered["_key"] = ordered["base_product"].map(normalize_text)
    ordered["_ts"] = pd.to_datetime(
        pd.Series(
            [parse_timestamp(v, tz=tz, dayfirst=dayfirst) for v in ordered["timestamp"]],
            index=ordered.index,
            dtype=object,
        ),
        utc=True,
    )
    ordered["_seq"] = range(len(ordered))
    return ordered.sort_values(
        ["_ts", "_seq"], na_position="first", kind="mergesort"
    )


def latest_stock_by_base(
    ledger: pd.DataFrame,
    prefer_real_over_estimated: bool = True,
    before: Optional[pd.Timestamp] = None,
    tz: str = "UTC",
    dayfirst: bool = True,
) -> dict[str, LatestStock]:
    """
    Latest ledger entry per normalized base product.

    With `prefer_real_over_estimated`, a numeric Real Quantity on that entry
    wins over the Estimated Quantity; otherwise the estimate is used, and 0
    when neither parses. `before` ignores entries at or after that instant
    (used to read yesterday's closing stock).
    """
    if ledger.empty:
        return {}

    ordered = _ordered(ledger, tz, dayfirst)
    ordered = ordered[ordered["_key"] != ""]
    if before is not None:
        ordered = ordered[ordered["_ts"] < before]

    latest = ordered.groupby("_key", sort=False).tail(1)

    stock = {}
    for row in latest.to_dict("records"):
        real = to_float(row["real_quantity"]) if prefer_real_over_estimated else None
        stock[row["_key"]] = LatestStock(
            quantity=real if real is not None else parse_number(row["estimated_quantity"]),
            unit=str(row["unit"]).strip(),
            timestamp=row["_ts"],
            display_name=str(row["base_product"]).strip(),
            from_real_count=real is not None,
        )
    return stock


def prune_ledger(
    ledger: pd.DataFrame, retention: int = 5, tz: str = "UTC", dayfirst: bool = True
) -> tuple[pd.DataFrame, int]:
    """
    Keeps the `retention` most recent entries per base product. Returns the
    surviving rows in their original sheet order plus the number removed.
    """
    if ledger.empty:
        return ledger, 0

    ordered = _ordered(ledger, tz, dayfirst)
    kept = ordered.groupby("_key", sort=False).tail(retention).sort_values("_seq")
    removed = len(ledger) - len(kept)
    kept = kept.drop(columns=["_key", "_ts", "_seq"])
    return kept.reset_index(drop=True), removed


def ledger_entries_to_frame(entries: list[LedgerEntry]) -> pd.DataFrame:
    """Internal-column frame, same shape as `parsers.parse_ledger_sheet` output."""
    return pd.DataFrame(
        [entry.model_dump() for entry in entries],
        columns=list(LedgerEntry.model_fields.keys()),
    )


def ledger_frame_to_sheet(ledger: pd.DataFrame) -> pd.DataFrame:
    """Renames internal columns back to the ledger sheet headers."""
    headers = dict(zip(LedgerEntry.model_fields.keys(), sheet_columns(LedgerEntry)))
    return ledger.rename(columns=headers)[sheet_columns(LedgerEntry)]
