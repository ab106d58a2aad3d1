import logging
from typing import Optional

import pandas as pd
from pydantic import ValidationError

from .errors import MissingDataSourceError
from .schemas import CycleRecord, ProductState, ReportRow, WorkflowStatus
from .utils import normalize_text, parse_number, to_float

logger = logging.getLogger(__name__)

# internal name -> sheet header
CATALOG_COLUMNS = {
    "product_name": "Product Name",
    "base_product": "Base Product",
    "acquisition_format": "Acquisition Format",
    "acquisition_quantity": "Acquisition Quantity",
    "acquisition_unit": "Acquisition Unit",
    "sale_factor": "Sale Factor",
    "sale_unit": "Sale Unit",
}
CATALOG_OPTIONAL_COLUMNS = {"category": "Category"}

ORDER_COLUMNS = {
    "order_id": "Order ID",
    "order_date": "Order Date",
    "order_state": "Order State",
    "product_name": "Product Name",
    "quantity": "Quantity",
}
ORDER_OPTIONAL_COLUMNS = {"base_product": "Base Product"}

ACQUISITION_COLUMNS = {
    "base_product": "Base Product",
    "format": "Format",
    "quantity": "Quantity",
}
ACQUISITION_OPTIONAL_COLUMNS = {"date": "Date"}

LEDGER_COLUMNS = {
    "timestamp": "Timestamp",
    "base_product": "Base Product",
    "estimated_quantity": "Estimated Quantity",
    "real_quantity": "Real Quantity",
    "unit": "Unit",
}

REPORT_COLUMNS = {"base_product": "Base Product"}
REPORT_OPTIONAL_COLUMNS = {
    "inventory_yesterday": "Inventory Yesterday",
    "purchases_today": "Purchases Today",
    "sales_today": "Sales Today",
    "inventory_today_estimated": "Inventory Today (Estimated)",
    "stock_real_user_entered": "Real Stock",
    "discrepancy": "Discrepancy",
    "notes": "Notes",
}

WORKFLOW_COLUMNS = {"base_product": "Base Product", "state": "State"}
WORKFLOW_OPTIONAL_COLUMNS = {
    "notes": "Notes",
    "updated_by": "Updated By",
    "updated_at": "Updated At",
}

CYCLE_COLUMNS = {"day": "Day"}
CYCLE_OPTIONAL_COLUMNS = {"opened_at": "Opened At", "closed_at": "Closed At"}


def _select_columns(
    df: pd.DataFrame,
    sheet: str,
    required: dict[str, str],
    optional: dict[str, str] | None = None,
) -> pd.DataFrame:
    """
    Finds columns by header name (case and accent insensitive) and returns a
    frame with internal column names. Missing optional columns come back blank.
    """
    headers = {normalize_text(col): col for col in df.columns}
    selected = pd.DataFrame(index=df.index)

    for internal_name, header in required.items():
        source = headers.get(normalize_text(header))
        if source is None:
            raise MissingDataSourceError(sheet, header)
        selected[internal_name] = df[source].fillna("")

    for internal_name, header in (optional or {}).items():
        source = headers.get(normalize_text(header))
        selected[internal_name] = df[source].fillna("") if source is not None else ""

    return selected.reset_index(drop=True)


def parse_catalog_sheet(df: pd.DataFrame, sheet: str = "Catalog") -> pd.DataFrame:
    parsed = _select_columns(df, sheet, CATALOG_COLUMNS, CATALOG_OPTIONAL_COLUMNS)
    logger.info(f"  > Catalog: {len(parsed)} rows.")
    return parsed


def parse_orders_sheet(df: pd.DataFrame, sheet: str = "Orders") -> pd.DataFrame:
    parsed = _select_columns(df, sheet, ORDER_COLUMNS, ORDER_OPTIONAL_COLUMNS)
    logger.info(f"  > Orders: {len(parsed)} line items.")
    return parsed


def parse_acquisitions_sheet(
    df: pd.DataFrame, sheet: str = "Acquisitions"
) -> pd.DataFrame:
    parsed = _select_columns(
        df, sheet, ACQUISITION_COLUMNS, ACQUISITION_OPTIONAL_COLUMNS
    )
    logger.info(f"  > Acquisitions: {len(parsed)} line items.")
    return parsed


def parse_ledger_sheet(df: pd.DataFrame, sheet: str = "Ledger") -> pd.DataFrame:
    parsed = _select_columns(df, sheet, LEDGER_COLUMNS)
    logger.info(f"  > Ledger: {len(parsed)} historical entries.")
    return parsed


def parse_report_sheet(df: pd.DataFrame, sheet: str = "Report") -> list[ReportRow]:
    """
    Reads the working report back, tolerating whatever a person typed in the
    Real Stock column: anything non-numeric reads as "not entered".
    """
    parsed = _select_columns(df, sheet, REPORT_COLUMNS, REPORT_OPTIONAL_COLUMNS)
    rows = []
    for record in parsed.to_dict("records"):
        if not str(record["base_product"]).strip():
            continue
        rows.append(
            ReportRow(
                base_product=str(record["base_product"]).strip(),
                inventory_yesterday=parse_number(record["inventory_yesterday"]),
                purchases_today=parse_number(record["purchases_today"]),
                sales_today=parse_number(record["sales_today"]),
                inventory_today_estimated=parse_number(
                    record["inventory_today_estimated"]
                ),
                stock_real_user_entered=to_float(record["stock_real_user_entered"]),
                discrepancy=to_float(record["discrepancy"]),
                notes=str(record["notes"]),
            )
        )
    return rows


def parse_workflow_sheet(
    df: pd.DataFrame, sheet: str = "Workflow"
) -> dict[str, ProductState]:
    """Workflow states keyed by normalized base product name."""
    if df.empty and len(df.columns) == 0:
        return {}
    parsed = _select_columns(df, sheet, WORKFLOW_COLUMNS, WORKFLOW_OPTIONAL_COLUMNS)
    states = {}
    for record in parsed.to_dict("records"):
        key = normalize_text(record["base_product"])
        if not key:
            continue
        try:
            status = WorkflowStatus(normalize_text(record["state"]))
        except ValueError:
            logger.warning(
                f"Unknown workflow state '{record['state']}' for "
                f"'{record['base_product']}'. Treating as pending."
            )
            status = WorkflowStatus.PENDING
        states[key] = ProductState(
            base_product=str(record["base_product"]).strip(),
            state=status,
            notes=str(record["notes"]),
            updated_by=str(record["updated_by"]),
            updated_at=str(record["updated_at"]),
        )
    return states


def parse_cycle_sheet(df: pd.DataFrame, sheet: str = "Cycle") -> Optional[CycleRecord]:
    """The current cycle is the last valid row; None when no day was ever opened."""
    if df.empty:
        return None
    parsed = _select_columns(df, sheet, CYCLE_COLUMNS, CYCLE_OPTIONAL_COLUMNS)
    cycle = None
    for record in parsed.to_dict("records"):
        if not str(record["day"]).strip():
            continue
        try:
            cycle = CycleRecord(
                day=str(record["day"]).strip(),
                opened_at=str(record["opened_at"]).strip(),
                closed_at=str(record["closed_at"]).strip(),
            )
        except ValidationError:
            logger.warning(f"Unreadable cycle day '{record['day']}' in '{sheet}'. Ignored.")
    return cycle
