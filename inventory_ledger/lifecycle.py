"""
Day lifecycle: OPEN -> (reconcile) -> REPORTING -> (edits...) -> CLOSING -> OPEN.

There is no terminal phase; the cycle repeats every day. A reconciliation
re-run while REPORTING simply regenerates the report.

The phase survives restarts through the Cycle sheet: an open cycle means
REPORTING, a closed one means OPEN.
"""

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from . import workflow
from .config import ReconciliationConfig
from .errors import InvalidTransitionError
from .pipelines import (
    DayClosePipeline,
    DayCloseResult,
    ReconciliationPipeline,
    ReconciliationResult,
)
from .store import CsvStore

logger = logging.getLogger(__name__)


class DayPhase(str, Enum):
    OPEN = "open"
    REPORTING = "reporting"
    CLOSING = "closing"


class DayLifecycle:
    def __init__(
        self,
        store: CsvStore,
        config: ReconciliationConfig,
        test_mode: bool = False,
        output_dir: Optional[Path] = None,
        phase: Optional[DayPhase] = None,
    ):
        self.store = store
        self.config = config
        self.test_mode = test_mode
        self.output_dir = output_dir
        self.phase = phase or self._infer_phase()

    def _infer_phase(self) -> DayPhase:
        cycle = workflow.read_cycle(self.store, self.config)
        if cycle is not None:
            return DayPhase.OPEN if cycle.is_closed else DayPhase.REPORTING
        # report written before cycles were recorded
        if self.store.exists(self.config.report_sheet):
            if not self.store.read(self.config.report_sheet).empty:
                return DayPhase.REPORTING
        return DayPhase.OPEN

    def _require(self, *allowed: DayPhase) -> None:
        if self.phase not in allowed:
            raise InvalidTransitionError(
                f"Operation not allowed while the day is {self.phase.value}",
                detail=f"allowed: {', '.join(p.value for p in allowed)}",
            )

    def open_day(self, now: Optional[datetime] = None) -> ReconciliationResult:
        self._require(DayPhase.OPEN, DayPhase.REPORTING)
        result = ReconciliationPipeline(
            self.store, self.config, now=now, test_mode=self.test_mode
        ).run()
        self.phase = DayPhase.REPORTING
        return result

    def edit_stock(
        self,
        base_product: str,
        raw_value: Any,
        updated_by: str = "",
        now: Optional[datetime] = None,
    ) -> workflow.EditOutcome:
        self._require(DayPhase.REPORTING)
        return workflow.record_stock_edit(
            self.store, self.config, base_product, raw_value, updated_by, now=now
        )

    def edit_stocks(
        self,
        updates: Iterable[tuple[str, Any]],
        updated_by: str = "",
        now: Optional[datetime] = None,
    ) -> workflow.EditOutcome:
        self._require(DayPhase.REPORTING)
        return workflow.apply_stock_updates(
            self.store, self.config, updates, updated_by, now=now
        )

    def close_day(self, now: Optional[datetime] = None) -> DayCloseResult:
        self._require(DayPhase.REPORTING)
        self.phase = DayPhase.CLOSING
        try:
            result = DayClosePipeline(
                self.store,
                self.config,
                now=now,
                test_mode=self.test_mode,
                output_dir=self.output_dir,
            ).run()
        except Exception:
            self.phase = DayPhase.REPORTING
            raise
        self.phase = DayPhase.OPEN
        logger.info("🌙 Day closed. Ready for the next cycle.")
        return result
