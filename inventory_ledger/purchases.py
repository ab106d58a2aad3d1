import logging
from dataclasses import dataclass, field
from typing import Literal, Optional

import pandas as pd

from .catalog import CatalogIndex
from .units import convert_to_base_unit, parse_purchase_format
from .utils import DayWindow, normalize_text, parse_number, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass
class PurchaseAggregation:
    purchases_by_base: dict[str, float] = field(default_factory=dict)
    # base product key -> human readable reasons
    inconsistencies: dict[str, list[str]] = field(default_factory=dict)
    display_names: dict[str, str] = field(default_factory=dict)
    unresolved_lines: int = 0


def _has_dates(lines: pd.DataFrame) -> bool:
    return "date" in lines.columns and bool(
        (lines["date"].astype(str).str.strip() != "").any()
    )


def aggregate_purchases_for_day(
    lines: pd.DataFrame,
    catalog: CatalogIndex,
    window: Optional[DayWindow],
    date_filter_enabled: bool = False,
    strategy: Literal["catalog_factor", "unit_conversion"] = "catalog_factor",
    tz: str = "UTC",
    dayfirst: bool = True,
) -> PurchaseAggregation:
    """
    Sums purchased quantities per base product, in base units.

    "catalog_factor" multiplies by the catalog's acquisition factor for the
    line's format; lines whose format is not in the catalog add nothing and
    are only counted in `unresolved_lines`.

    "unit_conversion" reads the multiplier from the format string itself
    ("Caja (10 Unidad)") and requires its unit to match the base product's
    unit; every failure is recorded in `inconsistencies`.

    Without date filtering every line belongs to the current cycle.
    """
    result = PurchaseAggregation()
    filter_by_date = window is not None and date_filter_enabled and _has_dates(lines)

    for line in lines.to_dict("records"):
        base_name = str(line["base_product"]).strip()
        base_key = normalize_text(base_name)
        if not base_key:
            continue

        if filter_by_date:
            line_date = parse_timestamp(line["date"], tz=tz, dayfirst=dayfirst)
            if pd.isna(line_date) or line_date < window.start:
                continue

        result.display_names.setdefault(base_key, base_name)
        format_label = str(line["format"]).strip()
        quantity = parse_number(line["quantity"])

        if strategy == "unit_conversion":
            target_unit = catalog.unit_for(base_key)
            conversion = convert_to_base_unit(
                quantity, parse_purchase_format(format_label), target_unit
            )
            if not conversion.ok:
                result.unresolved_lines += 1
                result.inconsistencies.setdefault(base_key, []).append(
                    f"{format_label or '(blank format)'}: {conversion.reason}"
                )
                continue
            converted = conversion.quantity
        else:
            factor = catalog.acquisition_factor(base_name, format_label)
            if factor is None:
                result.unresolved_lines += 1
                logger.debug(
                    f"No acquisition factor for '{base_name}' / '{format_label}'."
                )
                continue
            converted = quantity * factor

        result.purchases_by_base[base_key] = (
            result.purchases_by_base.get(base_key, 0.0) + converted
        )

    logger.info(
        f"  > Purchases: {len(result.purchases_by_base)} base products received"
        f" ({result.unresolved_lines} lines unresolved)."
    )
    for base_key, reasons in result.inconsistencies.items():
        logger.warning(
            f"  > ⚠️  Inconsistent purchase units for "
            f"'{result.display_names.get(base_key, base_key)}': {'; '.join(reasons)}"
        )
    return result


def check_purchase_units(
    lines: pd.DataFrame, catalog: CatalogIndex
) -> dict[str, list[str]]:
    """Unit/format validation of every acquisition line, for the dashboard."""
    aggregation = aggregate_purchases_for_day(
        lines, catalog, None, strategy="unit_conversion"
    )
    return {
        aggregation.display_names.get(key, key): reasons
        for key, reasons in aggregation.inconsistencies.items()
    }
