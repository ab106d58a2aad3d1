"""
Unit vocabulary and purchase-format parsing.

Source sheets spell units freely ("Kilos", "KG", "gramos", "Caja (10 Unidad)").
Everything is folded into a small canonical vocabulary so that formats can be
compared against a base product's unit.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Literal, Optional

from .utils import normalize_text, to_float

# Ordered: the first pattern that matches wins. Words are delimited by
# non-letters so "4kg" still reads as kilograms.
_UNIT_PATTERNS: list[tuple[str, re.Pattern]] = [
    (canonical, re.compile(rf"(?<![a-z])(?:{alternatives})(?![a-z])"))
    for canonical, alternatives in [
        ("kg", r"kgs?|kilos?|kilogramos?|kilograms?"),
        ("g", r"g|grs?|gramos?|grams?"),
        ("lt", r"l|lts?|litros?|liters?|litres?"),
        ("botella", r"botellas?|bottles?"),
        ("bandeja", r"bandejas?|trays?"),
        ("paquete", r"paquetes?|paq|packages?|packs?"),
        ("malla", r"mallas?|nets?"),
        ("caja", r"cajas?|box|boxes"),
        ("unidad", r"unidad|unidades|unid|und|units?|u"),
        ("trio", r"trios?"),
        ("docena", r"docenas?|dozens?"),
        ("envase", r"envases?|containers?"),
    ]
]

CANONICAL_UNITS = frozenset(canonical for canonical, _ in _UNIT_PATTERNS)

_PARENTHETICAL = re.compile(r"\(\s*(\d+(?:[.,]\d+)?)\s*([^)]*?)\s*\)")


def normalize_unit(raw: Any) -> str:
    """
    Folds a free-text unit into the canonical vocabulary.
    Unrecognized input comes back unchanged so it can be flagged downstream.
    """
    text = normalize_text(raw)
    if not text:
        return "" if raw is None else str(raw)
    for canonical, pattern in _UNIT_PATTERNS:
        if pattern.search(text):
            return canonical
    return str(raw)


def is_known_unit(unit: str) -> bool:
    return unit in CANONICAL_UNITS


@dataclass(frozen=True)
class PurchaseFormat:
    unit: str
    quantity_per_format: float
    source_kind: Literal["parenthetical", "simple", "unknown"]


@dataclass(frozen=True)
class Conversion:
    quantity: float
    ok: bool
    reason: Optional[str] = None


def parse_purchase_format(raw: Any) -> PurchaseFormat:
    """
    "Package (4 Kg)"   -> kg x 4   (parenthetical)
    "Caja"             -> caja x 1 (simple)
    "Saco de papas"    -> NaN      (unknown)
    """
    text = "" if raw is None else str(raw)
    match = _PARENTHETICAL.search(text)
    if match:
        multiplier = to_float(match.group(1))
        return PurchaseFormat(
            unit=normalize_unit(match.group(2)),
            quantity_per_format=math.nan if multiplier is None else multiplier,
            source_kind="parenthetical",
        )

    unit = normalize_unit(text)
    if is_known_unit(unit):
        return PurchaseFormat(unit=unit, quantity_per_format=1.0, source_kind="simple")
    return PurchaseFormat(unit=unit, quantity_per_format=math.nan, source_kind="unknown")


def convert_to_base_unit(
    purchased_qty: float, parsed: PurchaseFormat, target_unit: Any
) -> Conversion:
    """Converts a purchased quantity into base units, or explains why it can't."""
    multiplier = parsed.quantity_per_format
    if multiplier is None or math.isnan(multiplier):
        return Conversion(
            quantity=0.0, ok=False, reason="format without interpretable factor"
        )

    target = normalize_unit(target_unit)
    if parsed.unit != target:
        return Conversion(
            quantity=0.0,
            ok=False,
            reason=f"incompatible unit: format {parsed.unit} → target {target}",
        )
    return Conversion(quantity=purchased_qty * multiplier, ok=True)


def extract_format_label(raw: Any) -> str:
    """
    Base label of a format string: the text before " (" when present,
    otherwise the first word. "Caja (10 Unidad)" -> "Caja", "Malla grande" -> "Malla".
    """
    text = "" if raw is None else str(raw).strip()
    if " (" in text:
        return text.split(" (", 1)[0].strip()
    parts = text.split()
    return parts[0] if parts else ""
