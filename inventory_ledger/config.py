from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from . import settings


class ReconciliationConfig(BaseModel):
    """
    Everything a reconciliation cycle needs to know about its environment.
    Built once from `settings` by the entry scripts and passed into the
    pipelines; tests construct it directly.
    """

    catalog_sheet: str = "Catalog"
    orders_sheet: str = "Orders"
    acquisitions_sheet: str = "Acquisitions"
    ledger_sheet: str = "Ledger"
    report_sheet: str = "Report"
    discrepancy_sheet: str = "Discrepancies"
    workflow_sheet: str = "Workflow"
    cycle_sheet: str = "Cycle"

    timezone: str = "UTC"
    dayfirst_dates: bool = True

    # None or an empty list disables the state filter
    allowed_order_states: Optional[list[str]] = None
    base_product_source: Literal["order_column", "catalog"] = "order_column"

    purchase_strategy: Literal["catalog_factor", "unit_conversion"] = "catalog_factor"
    purchase_date_filter: bool = False

    ledger_retention: int = Field(default=5, ge=1)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{value}'") from e
        return value

    @field_validator("allowed_order_states")
    @classmethod
    def _strip_states(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return None
        return [state.strip() for state in value if state and state.strip()]

    @classmethod
    def from_settings(cls) -> "ReconciliationConfig":
        return cls(
            catalog_sheet=settings.CATALOG_SHEET,
            orders_sheet=settings.ORDERS_SHEET,
            acquisitions_sheet=settings.ACQUISITIONS_SHEET,
            ledger_sheet=settings.LEDGER_SHEET,
            report_sheet=settings.REPORT_SHEET,
            discrepancy_sheet=settings.DISCREPANCY_SHEET,
            workflow_sheet=settings.WORKFLOW_SHEET,
            cycle_sheet=settings.CYCLE_SHEET,
            timezone=settings.TIMEZONE,
            dayfirst_dates=settings.DAYFIRST_DATES,
            allowed_order_states=(
                settings.ALLOWED_ORDER_STATES if settings.ENFORCE_ORDER_STATES else None
            ),
            base_product_source=settings.BASE_PRODUCT_SOURCE,
            purchase_strategy=settings.PURCHASE_STRATEGY,
            purchase_date_filter=settings.PURCHASE_DATE_FILTER,
            ledger_retention=settings.LEDGER_RETENTION,
        )
