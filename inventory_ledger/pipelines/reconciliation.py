import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .. import data_handler
from ..catalog import build_catalog_index
from ..config import ReconciliationConfig
from ..ledger import latest_stock_by_base
from ..parsers import (
    parse_acquisitions_sheet,
    parse_catalog_sheet,
    parse_ledger_sheet,
    parse_orders_sheet,
    parse_workflow_sheet,
)
from ..pipeline import DataPipeline
from ..purchases import aggregate_purchases_for_day
from ..sales import aggregate_sales_for_day
from ..schemas import CycleRecord, LedgerEntry, ProductState, ReportRow, sheet_columns
from ..store import CsvStore
from ..utils import format_timestamp, normalize_text
from ..workflow import reset_approvals, write_cycle, write_states

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    report_rows: list[ReportRow]
    new_ledger_entries: list[LedgerEntry]
    states: dict[str, ProductState]
    approvals_reset: int = 0
    unmatched_product_names: list[str] = field(default_factory=list)
    excluded_count: int = 0
    # display name -> reasons
    inconsistencies: dict[str, list[str]] = field(default_factory=dict)
    cycle: Optional[CycleRecord] = None


class ReconciliationPipeline(DataPipeline):
    """
    yesterday's closing stock + today's purchases - today's sales
    = today's estimated stock, for every known base product.
    """

    def __init__(
        self,
        store: CsvStore,
        config: ReconciliationConfig,
        now: Optional[datetime] = None,
        test_mode: bool = False,
    ):
        super().__init__("reconciliation", store, config, now=now, test_mode=test_mode)

    def extract(self) -> dict[str, Any]:
        logger.info("--- Reading Sources ---")
        config = self.config
        return {
            "catalog": parse_catalog_sheet(
                self.store.read(config.catalog_sheet), config.catalog_sheet
            ),
            "orders": parse_orders_sheet(
                self.store.read(config.orders_sheet), config.orders_sheet
            ),
            "acquisitions": parse_acquisitions_sheet(
                self.store.read(config.acquisitions_sheet), config.acquisitions_sheet
            ),
            "ledger": parse_ledger_sheet(
                self.store.read(config.ledger_sheet), config.ledger_sheet
            ),
            "states": parse_workflow_sheet(
                self.store.read_or_empty(
                    config.workflow_sheet, sheet_columns(ProductState)
                ),
                config.workflow_sheet,
            ),
        }

    def transform(self, sources: dict[str, Any]) -> ReconciliationResult:
        config = self.config

        # Approval is scoped to one day's report
        states, approvals_reset = reset_approvals(sources["states"])
        if approvals_reset:
            logger.info(f"  > Reset {approvals_reset} approved products to pending.")

        # Catalog, today's movements, yesterday's closing stock
        logger.info("\n--- Aggregating ---")
        catalog = build_catalog_index(sources["catalog"])
        sales = aggregate_sales_for_day(
            sources["orders"],
            catalog,
            self.window,
            allowed_states=config.allowed_order_states,
            base_product_source=config.base_product_source,
            tz=config.timezone,
            dayfirst=config.dayfirst_dates,
        )
        purchases = aggregate_purchases_for_day(
            sources["acquisitions"],
            catalog,
            self.window,
            date_filter_enabled=config.purchase_date_filter,
            strategy=config.purchase_strategy,
            tz=config.timezone,
            dayfirst=config.dayfirst_dates,
        )
        yesterday = latest_stock_by_base(
            sources["ledger"],
            prefer_real_over_estimated=True,
            before=self.window.start,
            tz=config.timezone,
            dayfirst=config.dayfirst_dates,
        )
        logger.info(f"  > Yesterday's stock found for {len(yesterday)} base products.")

        # Every known base product, active or not
        keys = (
            set(catalog.base_products)
            | set(sales.sales_by_base)
            | set(purchases.purchases_by_base)
            | set(purchases.inconsistencies)
            | set(yesterday)
        )
        keys.discard("")

        logger.info("\n--- Computing Today's Stock ---")
        timestamp = format_timestamp(self.now)
        report_rows = []
        new_entries = []
        inconsistencies = {}

        for key in keys:
            previous = yesterday.get(key)
            display_name = (
                catalog.display_name(key)
                or sales.display_names.get(key)
                or purchases.display_names.get(key)
                or (previous.display_name if previous else key)
            )
            unit = catalog.unit_for(key) or (previous.unit if previous else "")

            inventory_yesterday = previous.quantity if previous else 0.0
            purchased = purchases.purchases_by_base.get(key, 0.0)
            sold = sales.sales_by_base.get(key, 0.0)
            inventory_today = inventory_yesterday + purchased - sold

            reasons = purchases.inconsistencies.get(key, [])
            if reasons:
                inconsistencies[display_name] = reasons

            report_rows.append(
                ReportRow(
                    base_product=display_name,
                    inventory_yesterday=inventory_yesterday,
                    purchases_today=purchased,
                    sales_today=sold,
                    inventory_today_estimated=inventory_today,
                    notes="; ".join(reasons),
                )
            )
            new_entries.append(
                LedgerEntry(
                    timestamp=timestamp,
                    base_product=display_name,
                    estimated_quantity=inventory_today,
                    unit=unit,
                )
            )

        # Sorted by display name, ignoring case and accents
        def by_name(item):
            return (normalize_text(item.base_product), item.base_product)

        report_rows.sort(key=by_name)
        new_entries.sort(key=by_name)

        logger.info(f"  > {len(report_rows)} base products reconciled.")
        self.metadata = {
            "date": self.window.day.isoformat(),
            "products": len(report_rows),
            "voidedLines": sales.excluded_count,
            "unmatchedProducts": sales.unmatched_product_names,
            "inconsistencies": inconsistencies,
        }

        return ReconciliationResult(
            report_rows=report_rows,
            new_ledger_entries=new_entries,
            states=states,
            approvals_reset=approvals_reset,
            unmatched_product_names=sales.unmatched_product_names,
            excluded_count=sales.excluded_count,
            inconsistencies=inconsistencies,
            cycle=CycleRecord(day=self.window.day, opened_at=timestamp),
        )

    def load(self, result: ReconciliationResult) -> None:
        logger.info("\n--- Writing Report and Ledger ---")
        config = self.config

        if result.approvals_reset or self.store.exists(config.workflow_sheet):
            write_states(self.store, config, result.states)

        # Clear-then-write, never an incremental patch
        self.store.write(
            config.report_sheet,
            data_handler.rows_to_frame(result.report_rows, ReportRow),
        )
        # One new estimate per base product
        self.store.append(
            config.ledger_sheet,
            data_handler.rows_to_frame(result.new_ledger_entries, LedgerEntry),
        )
        logger.info(
            f"✅ Report rewritten ({len(result.report_rows)} rows), "
            f"{len(result.new_ledger_entries)} ledger entries appended."
        )
        if result.cycle is not None:
            write_cycle(self.store, config, result.cycle)

        self.notify(result.report_rows)
