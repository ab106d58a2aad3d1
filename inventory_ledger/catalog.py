"""
Catalog index: lookup structures built in one pass over the SKU catalog.

- product name      -> SkuMapping (base product, sale factor, sale unit)
- base product      -> {format label -> AcquisitionFormat}
- base product      -> BaseProduct (display name, unit, category)

All keys are normalized text (see `utils.normalize_text`).
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from .schemas import AcquisitionFormat, BaseProduct, SkuMapping
from .units import extract_format_label, normalize_unit
from .utils import normalize_text, to_float

logger = logging.getLogger(__name__)


@dataclass
class CatalogIndex:
    name_to_sku: dict[str, SkuMapping] = field(default_factory=dict)
    base_to_acquisition_formats: dict[str, dict[str, AcquisitionFormat]] = field(
        default_factory=dict
    )
    base_products: dict[str, BaseProduct] = field(default_factory=dict)

    def unit_for(self, base_key: str) -> str:
        product = self.base_products.get(base_key)
        return product.sale_unit if product else ""

    def lookup_sku(self, product_name: str) -> Optional[SkuMapping]:
        return self.name_to_sku.get(normalize_text(product_name))

    def acquisition_factor(self, base_product: str, format_label: str) -> Optional[float]:
        """
        Factor for one purchased format of a base product. Tries the label as
        written first, then its extracted base label ("Caja (10 u)" -> "caja").
        """
        formats = self.base_to_acquisition_formats.get(normalize_text(base_product))
        if not formats:
            return None
        for candidate in (format_label, extract_format_label(format_label)):
            found = formats.get(normalize_text(candidate))
            if found is not None:
                return found.conversion_factor
        return None

    def display_name(self, key: str) -> Optional[str]:
        product = self.base_products.get(key)
        return product.name if product else None


def _factor(value, row_label: str, column: str) -> float:
    factor = to_float(value)
    if factor is None:
        if str(value).strip():
            logger.warning(
                f"  > ⚠️  Unparseable {column} '{value}' for '{row_label}'. Using 0."
            )
        return 0.0
    if factor < 0:
        logger.warning(f"  > ⚠️  Negative {column} for '{row_label}'. Using 0.")
        return 0.0
    return factor


def build_catalog_index(catalog: pd.DataFrame) -> CatalogIndex:
    """Builds the index from a parsed catalog frame (see `parsers.parse_catalog_sheet`)."""
    index = CatalogIndex()
    duplicates = 0

    for row in catalog.to_dict("records"):
        product_name = str(row["product_name"]).strip()
        base_name = str(row["base_product"]).strip()
        base_key = normalize_text(base_name)

        if base_key and base_key not in index.base_products:
            unit = row["sale_unit"] or row["acquisition_unit"]
            index.base_products[base_key] = BaseProduct(
                key=base_key,
                name=base_name,
                sale_unit=normalize_unit(unit) if str(unit).strip() else "",
                category=str(row.get("category", "")).strip(),
            )

        if product_name and base_key:
            name_key = normalize_text(product_name)
            if name_key in index.name_to_sku:
                duplicates += 1
                logger.warning(
                    f"  > ⚠️  Duplicate catalog product name '{product_name}'. "
                    f"Last entry wins."
                )
            index.name_to_sku[name_key] = SkuMapping(
                product_name=product_name,
                base_product=base_key,
                sale_conversion_factor=_factor(
                    row["sale_factor"], product_name, "sale factor"
                ),
                sale_unit=normalize_unit(row["sale_unit"]),
            )

        format_label = str(row["acquisition_format"]).strip()
        if base_key and format_label:
            acquisition = AcquisitionFormat(
                base_product=base_key,
                format_label=format_label,
                conversion_factor=_factor(
                    row["acquisition_quantity"], base_name, "acquisition quantity"
                ),
            )
            formats = index.base_to_acquisition_formats.setdefault(base_key, {})
            formats[normalize_text(format_label)] = acquisition
            formats.setdefault(normalize_text(extract_format_label(format_label)), acquisition)

    logger.info(
        f"  > Catalog index: {len(index.name_to_sku)} product names, "
        f"{len(index.base_products)} base products"
        + (f", {duplicates} duplicate names." if duplicates else ".")
    )
    return index


