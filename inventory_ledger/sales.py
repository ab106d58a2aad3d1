import logging
from dataclasses import dataclass, field
from typing import Literal, Optional

import pandas as pd

from .catalog import CatalogIndex
from .utils import DayWindow, normalize_text, parse_timestamp, to_float

logger = logging.getLogger(__name__)


@dataclass
class SalesAggregation:
    sales_by_base: dict[str, float] = field(default_factory=dict)
    # Display casing for bases first seen on an order row
    display_names: dict[str, str] = field(default_factory=dict)
    unmatched_product_names: list[str] = field(default_factory=list)
    excluded_count: int = 0
    lines_counted: int = 0


def is_voided_quantity(raw_quantity) -> bool:
    """Order quantities starting with "E" (any case) mark voided/returned lines."""
    return str(raw_quantity).strip().upper().startswith("E")


def aggregate_sales_for_day(
    orders: pd.DataFrame,
    catalog: CatalogIndex,
    window: DayWindow,
    allowed_states: Optional[list[str]] = None,
    base_product_source: Literal["order_column", "catalog"] = "order_column",
    tz: str = "UTC",
    dayfirst: bool = True,
) -> SalesAggregation:
    """
    Sums today's sold quantities per base product, in base units.

    Each order line is converted with its catalog sale factor. The base product
    comes from the order's own "Base Product" column when `base_product_source`
    is "order_column" and the cell is filled, otherwise from the catalog.
    Product names missing from the catalog are collected in
    `unmatched_product_names` and add nothing, even when the order row names
    a base product: that column decides where a line goes, not how much of it.
    """
    result = SalesAggregation()
    allowed = {normalize_text(s) for s in allowed_states} if allowed_states else None
    unmatched: dict[str, str] = {}

    for line in orders.to_dict("records"):
        if is_voided_quantity(line["quantity"]):
            result.excluded_count += 1
            continue

        if allowed is not None and normalize_text(line["order_state"]) not in allowed:
            continue

        order_date = parse_timestamp(line["order_date"], tz=tz, dayfirst=dayfirst)
        if not window.contains(order_date):
            continue

        product_name = str(line["product_name"]).strip()
        sku = catalog.lookup_sku(product_name)
        if sku is None:
            # no sale factor, so nothing to count
            if product_name:
                unmatched.setdefault(normalize_text(product_name), product_name)
            continue

        direct_base = str(line.get("base_product", "")).strip()
        if base_product_source == "order_column" and direct_base:
            base_key = normalize_text(direct_base)
            result.display_names.setdefault(base_key, direct_base)
        else:
            base_key = sku.base_product
        factor = sku.sale_conversion_factor

        quantity = to_float(line["quantity"])
        if quantity is None:
            logger.warning(
                f"  > ⚠️  Unparseable quantity '{line['quantity']}' on order "
                f"{line['order_id']} ({product_name}). Counted as 0."
            )
            quantity = 0.0

        result.sales_by_base[base_key] = (
            result.sales_by_base.get(base_key, 0.0) + quantity * factor
        )
        result.lines_counted += 1

    result.unmatched_product_names = sorted(unmatched.values(), key=normalize_text)

    logger.info(
        f"  > Sales: {result.lines_counted} lines counted, "
        f"{result.excluded_count} voided lines excluded, "
        f"{len(result.sales_by_base)} base products sold."
    )
    if result.unmatched_product_names:
        logger.warning(
            f"  > ⚠️  Product names not in catalog ({len(result.unmatched_product_names)}): "
            f"{', '.join(result.unmatched_product_names)}"
        )
    return result
