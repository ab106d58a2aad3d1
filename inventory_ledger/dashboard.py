"""
Read/write surface offered to the dashboard UI: a snapshot of the working
report joined with workflow state and catalog metadata, and a batch write of
verified stock counts.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from . import workflow
from .catalog import build_catalog_index
from .config import ReconciliationConfig
from .parsers import (
    parse_acquisitions_sheet,
    parse_catalog_sheet,
    parse_report_sheet,
)
from .purchases import check_purchase_units
from .schemas import WorkflowStatus
from .store import CsvStore
from .utils import normalize_text

logger = logging.getLogger(__name__)


class StockUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_product: str = Field(..., alias="baseProduct", min_length=1)
    quantity: Any = None


def get_dashboard_snapshot(store: CsvStore, config: ReconciliationConfig) -> dict:
    report_rows = parse_report_sheet(store.read(config.report_sheet), config.report_sheet)
    states = workflow.read_states(store, config)

    catalog = None
    inconsistencies: dict[str, list[str]] = {}
    if store.exists(config.catalog_sheet):
        catalog = build_catalog_index(
            parse_catalog_sheet(store.read(config.catalog_sheet), config.catalog_sheet)
        )
        if store.exists(config.acquisitions_sheet):
            inconsistencies = check_purchase_units(
                parse_acquisitions_sheet(
                    store.read(config.acquisitions_sheet), config.acquisitions_sheet
                ),
                catalog,
            )

    rows = []
    counts = {status.value: 0 for status in WorkflowStatus}
    for report_row in report_rows:
        key = normalize_text(report_row.base_product)
        state = states.get(key)
        product = catalog.base_products.get(key) if catalog else None
        status = state.state if state else WorkflowStatus.PENDING
        counts[status.value] += 1

        rows.append(
            {
                "baseProduct": report_row.base_product,
                "inventoryYesterday": report_row.inventory_yesterday,
                "purchasesToday": report_row.purchases_today,
                "salesToday": report_row.sales_today,
                "inventoryTodayEstimated": report_row.inventory_today_estimated,
                "realStock": report_row.stock_real_user_entered,
                "discrepancy": report_row.discrepancy,
                "notes": report_row.notes,
                "state": status.value,
                "stateNotes": state.notes if state else "",
                "updatedBy": state.updated_by if state else "",
                "updatedAt": state.updated_at if state else "",
                "category": product.category if product else "",
                "unit": product.sale_unit if product else "",
            }
        )

    return {
        "rows": rows,
        "summary": {
            "total": len(rows),
            "withRealStock": sum(
                1 for r in report_rows if r.stock_real_user_entered is not None
            ),
            **counts,
        },
        "inconsistencies": inconsistencies,
    }


def submit_stock_counts(
    store: CsvStore,
    config: ReconciliationConfig,
    updates: list[dict],
    updated_by: str = "",
    now: Optional[datetime] = None,
) -> workflow.EditOutcome:
    """Validates a batch of {baseProduct, quantity} updates and applies it."""
    parsed = [StockUpdate.model_validate(update) for update in updates]
    logger.info(f"📥 {len(parsed)} stock counts received from the dashboard.")
    return workflow.apply_stock_updates(
        store,
        config,
        [(update.base_product, update.quantity) for update in parsed],
        updated_by=updated_by,
        now=now,
    )
