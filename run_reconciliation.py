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


def run_reconciliation(test_mode: bool = False) -> int:
    """Daily entry point: opens the day and rebuilds the working report."""
    setup_logger(log_filename="reconciliation.log")
    logger.info("--- Starting Daily Inventory Reconciliation ---")

    try:
        config = ReconciliationConfig.from_settings()
    except ValidationError as e:
        logger.error("❌ Invalid configuration!")
        logger.error(e)
        return 1

    try:
        lifecycle = DayLifecycle(CsvStore(settings.DATA_DIR), config, test_mode=test_mode)
        result = lifecycle.open_day()
    except InventoryLedgerError as e:
        logger.error(f"❌ Reconciliation aborted: {e.message}")
        if e.detail:
            logger.error(f"   Detail: {e.detail}")
        return 1

    if result.unmatched_product_names:
        logger.warning(
            f"⚠️ {len(result.unmatched_product_names)} product names are not in the catalog."
        )
    if result.inconsistencies:
        logger.warning(
            f"⚠️ {len(result.inconsistencies)} products have inconsistent purchase units."
        )
    logger.info("\n--- Process Finished Successfully ---")
    return 0


if __name__ == "__main__":
    sys.exit(run_reconciliation(test_mode="--test" in sys.argv))
