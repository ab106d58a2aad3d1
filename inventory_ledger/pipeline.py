import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from . import data_handler
from .config import ReconciliationConfig
from .store import CsvStore
from .utils import current_time, day_window

logger = logging.getLogger(__name__)


class DataPipeline(ABC):
    """
    Abstract base class for the daily cycle steps (reconciliation, day close).
    Follows an Extract -> Transform -> Load pattern: every sheet is read up
    front, the whole result is computed in memory, and only then written.
    A failure in extract or transform leaves the store untouched.
    """

    def __init__(
        self,
        report_type: str,
        store: CsvStore,
        config: ReconciliationConfig,
        now: Optional[datetime] = None,
        test_mode: bool = False,
    ):
        self.report_type = report_type
        self.store = store
        self.config = config
        self.test_mode = test_mode
        # "Today" is fixed once per cycle
        self.now = current_time(now, config.timezone)
        self.window = day_window(self.now, config.timezone)
        self.metadata: dict[str, Any] = {}

    def run(self) -> Any:
        """
        Orchestrates the pipeline execution.
        """
        logger.info(f"🚀 STEP: {self.report_type.upper()} ({self.window.day.isoformat()})")
        logger.info("-" * 30)

        # --- 1. EXTRACT ---
        sources = self.extract()

        # --- 2. TRANSFORM ---
        result = self.transform(sources)

        # --- 3. LOAD ---
        self.load(result)

        logger.info(f"✅ {self.report_type.capitalize()} Pipeline Finished.\n")
        logger.info("=" * 60)
        return result

    @abstractmethod
    def extract(self) -> dict[str, Any]:
        """
        Reads every sheet the step needs. Raises MissingDataSourceError for
        an absent sheet or required column.
        """

    @abstractmethod
    def transform(self, sources: dict[str, Any]) -> Any:
        """Computes the complete result in memory. Must not write."""

    @abstractmethod
    def load(self, result: Any) -> None:
        """Writes the result with a small number of bulk writes."""

    def notify(self, rows: list[BaseModel]) -> None:
        """Posts rows and metadata to the webhook, unless in test mode."""
        if self.test_mode:
            logger.info("🧪 Test Mode: Skipping webhook post.")
            return
        data_handler.post_to_webhook(
            validated_data=rows,
            metadata=self.metadata,
            report_type=self.report_type,
        )
