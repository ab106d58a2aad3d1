import logging
import sys

from pydantic import ValidationError

from inventory_ledger import settings
from inventory_ledger.config import ReconciliationConfig
from inventory_ledger.errors import InventoryLedgerError
from inventory_ledger.lifecycle import DayLifecycle
from inventory_ledger.logger import setup_logger
from inventory_ledger.store import CsvStore

logger = logging.getLogger(__name__)


def close_day(test_mode: bool = False) -> int:
    """On-demand entry point: archives verified counts and closes the day."""
    setup_logger(log_filename="day_close.log")
    logger.info("--- Closing Inventory Day ---")

    try:
        config = ReconciliationConfig.from_settings()
    except ValidationError as e:
        logger.error("❌ Invalid configuration!")
        logger.error(e)
        return 1

    try:
        lifecycle = DayLifecycle(CsvStore(settings.DATA_DIR), config, test_mode=test_mode)
        result = lifecycle.close_day()
    except InventoryLedgerError as e:
        logger.error(f"❌ Day close aborted: {e.message}")
        if e.detail:
            logger.error(f"   Detail: {e.detail}")
        return 1

    logger.info(
        f"Archived {len(result.archived_entries)} verified counts "
        f"({result.skipped_count} products without a count)."
    )
    logger.info("\n--- Process Finished Successfully ---")
    return 0


if __name__ == "__main__":
    sys.exit(close_day(test_mode="--test" in sys.argv))
