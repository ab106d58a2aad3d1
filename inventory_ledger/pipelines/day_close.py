import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from .. import data_handler
from ..config import ReconciliationConfig
from ..errors import InvalidTransitionError
from ..ledger import (
    latest_stock_by_base,
    ledger_entries_to_frame,
    ledger_frame_to_sheet,
    prune_ledger,
)
from ..parsers import parse_ledger_sheet, parse_report_sheet
from ..pipeline import DataPipeline
from ..schemas import CycleRecord, LedgerEntry, ReportRow
from ..store import CsvStore
from ..utils import format_timestamp, normalize_text, window_for_day
from ..workflow import read_cycle, write_cycle

logger = logging.getLogger(__name__)


@dataclass
class DayCloseResult:
    archived_entries: list[LedgerEntry]
    report_rows: list[ReportRow]
    ledger: pd.DataFrame
    cycle: CycleRecord
    pruned_count: int = 0
    skipped_count: int = 0


class DayClosePipeline(DataPipeline):
    """
    Archives every verified Real Stock value as the authoritative closing
    stock of the day, then applies the ledger retention policy. Products
    without a verified count are left alone; tomorrow falls back to today's
    estimate for them.

    The day being closed is the one the report was opened for, not the
    calendar day of the close: a close after midnight still archives into
    the report's day, stamped at its last second.
    """

    def __init__(
        self,
        store: CsvStore,
        config: ReconciliationConfig,
        now: Optional[datetime] = None,
        test_mode: bool = False,
        output_dir: Optional[Path] = None,
    ):
        super().__init__("day_close", store, config, now=now, test_mode=test_mode)
        self.output_dir = output_dir

    def extract(self) -> dict[str, Any]:
        logger.info("--- Reading Report and Ledger ---")
        config = self.config
        return {
            "cycle": read_cycle(self.store, config),
            "report": parse_report_sheet(
                self.store.read(config.report_sheet), config.report_sheet
            ),
            "ledger": parse_ledger_sheet(
                self.store.read(config.ledger_sheet), config.ledger_sheet
            ),
        }

    def transform(self, sources: dict[str, Any]) -> DayCloseResult:
        config = self.config
        cycle: Optional[CycleRecord] = sources["cycle"]
        report_rows: list[ReportRow] = sources["report"]
        ledger: pd.DataFrame = sources["ledger"]

        if cycle is not None and cycle.is_closed:
            raise InvalidTransitionError(
                f"The day {cycle.day.isoformat()} is already closed",
                detail=f"closed at {cycle.closed_at}",
            )
        if cycle is None:
            logger.warning("⚠️ No open cycle recorded. Closing the current calendar day.")
            cycle = CycleRecord(day=self.window.day)

        cycle_window = window_for_day(cycle.day, config.timezone)
        timestamp = format_timestamp(cycle_window.clamp(self.now))

        latest = latest_stock_by_base(
            ledger, tz=config.timezone, dayfirst=config.dayfirst_dates
        )

        archived = []
        for row in report_rows:
            if row.stock_real_user_entered is None:
                continue
            previous = latest.get(normalize_text(row.base_product))
            archived.append(
                LedgerEntry(
                    timestamp=timestamp,
                    base_product=row.base_product,
                    estimated_quantity=row.inventory_today_estimated,
                    real_quantity=row.stock_real_user_entered,
                    unit=previous.unit if previous else "",
                )
            )
        skipped = len(report_rows) - len(archived)

        combined = pd.concat(
            [ledger, ledger_entries_to_frame(archived)], ignore_index=True
        )
        pruned, removed = prune_ledger(
            combined,
            retention=config.ledger_retention,
            tz=config.timezone,
            dayfirst=config.dayfirst_dates,
        )

        logger.info(
            f"  > {len(archived)} verified counts archived, {skipped} products "
            f"without a count, {removed} old ledger entries pruned."
        )
        self.metadata = {
            "date": cycle.day.isoformat(),
            "archived": len(archived),
            "withoutCount": skipped,
            "pruned": removed,
        }
        return DayCloseResult(
            archived_entries=archived,
            report_rows=report_rows,
            ledger=pruned,
            cycle=cycle.model_copy(update={"closed_at": format_timestamp(self.now)}),
            pruned_count=removed,
            skipped_count=skipped,
        )

    def load(self, result: DayCloseResult) -> None:
        logger.info("\n--- Writing Ledger and Archive ---")
        self.store.write(self.config.ledger_sheet, ledger_frame_to_sheet(result.ledger))
        data_handler.save_outputs(
            result.report_rows,
            ReportRow,
            day=result.cycle.day,
            output_dir=self.output_dir,
        )
        write_cycle(self.store, self.config, result.cycle)
        logger.info(
            f"✅ Day {result.cycle.day.isoformat()} closed: "
            f"{len(result.archived_entries)} products archived."
        )

        self.notify(result.archived_entries)
