from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    VERIFYING = "verifying"
    APPROVED = "approved"


# --- Catalog records (in-memory, keyed by normalized base product name) ---


class BaseProduct(BaseModel):
    """The canonical inventory item. `key` is the normalized name; `name`
    keeps the display casing from the catalog."""

    key: str
    name: str
    sale_unit: str = ""
    category: str = ""


class SkuMapping(BaseModel):
    product_name: str
    base_product: str
    sale_conversion_factor: float = Field(default=0.0, ge=0)
    sale_unit: str = ""


class AcquisitionFormat(BaseModel):
    base_product: str
    format_label: str
    conversion_factor: float = 0.0


# --- Sheet rows. Aliases are the sheet headers. ---


class LedgerEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(..., alias="Timestamp")
    base_product: str = Field(..., alias="Base Product")
    estimated_quantity: float = Field(default=0.0, alias="Estimated Quantity")
    real_quantity: Optional[float] = Field(default=None, alias="Real Quantity")
    unit: str = Field(default="", alias="Unit")


class ReportRow(BaseModel):
    """
    One row of the working report. Everything except `stock_real_user_entered`
    is regenerated on each reconciliation run; that column belongs to the
    person counting stock.
    """

    model_config = ConfigDict(populate_by_name=True)

    base_product: str = Field(..., alias="Base Product")
    inventory_yesterday: float = Field(default=0.0, alias="Inventory Yesterday")
    purchases_today: float = Field(default=0.0, alias="Purchases Today")
    sales_today: float = Field(default=0.0, alias="Sales Today")
    inventory_today_estimated: float = Field(
        default=0.0, alias="Inventory Today (Estimated)"
    )
    stock_real_user_entered: Optional[float] = Field(default=None, alias="Real Stock")
    discrepancy: Optional[float] = Field(default=None, alias="Discrepancy")
    notes: str = Field(default="", alias="Notes")


class DiscrepancyRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(..., alias="Timestamp")
    base_product: str = Field(..., alias="Base Product")
    estimated_quantity: float = Field(..., alias="Estimated")
    real_quantity: float = Field(..., alias="Real")
    discrepancy: float = Field(..., alias="Discrepancy")


class ProductState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_product: str = Field(..., alias="Base Product")
    state: WorkflowStatus = Field(default=WorkflowStatus.PENDING, alias="State")
    notes: str = Field(default="", alias="Notes")
    updated_by: str = Field(default="", alias="Updated By")
    updated_at: str = Field(default="", alias="Updated At")


class CycleRecord(BaseModel):
    """
    The day the working report was built for. A filled `closed_at` means the
    day has been closed and its report is read-only until the next open.
    """

    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(..., alias="Day")
    opened_at: str = Field(default="", alias="Opened At")
    closed_at: str = Field(default="", alias="Closed At")

    @property
    def is_closed(self) -> bool:
        return bool(self.closed_at.strip())


def sheet_columns(model: type[BaseModel]) -> list[str]:
    """Sheet headers for a row model, in field order."""
    return [field.alias or name for name, field in model.model_fields.items()]
