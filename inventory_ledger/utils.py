import logging
import math
import numbers
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class DayWindow:
    """Half-open interval [start, end) covering one calendar day."""

    start: pd.Timestamp
    end: pd.Timestamp

    @property
    def day(self) -> date:
        return self.start.date()

    def contains(self, ts: Any) -> bool:
        if ts is None or pd.isna(ts):
            return False
        return self.start <= ts < self.end

    def clamp(self, ts: pd.Timestamp) -> pd.Timestamp:
        """`ts`, pulled back to the last second of the day when it falls after it."""
        if ts >= self.end:
            return self.end - pd.Timedelta(seconds=1)
        return ts


def _localize(ts: pd.Timestamp, tz: str) -> pd.Timestamp:
    if ts.tzinfo is None:
        return ts.tz_localize(tz, ambiguous=False, nonexistent="shift_forward")
    return ts.tz_convert(tz)


def current_time(now: Optional[datetime] = None, tz: str = "UTC") -> pd.Timestamp:
    """`now` (or the wall clock) as an aware timestamp in `tz`."""
    if now is None:
        return pd.Timestamp.now(tz=tz)
    return _localize(pd.Timestamp(now), tz)


def window_for_day(day: date, tz: str = "UTC") -> DayWindow:
    start = _localize(pd.Timestamp(day), tz)
    end = _localize(pd.Timestamp(day + timedelta(days=1)), tz)
    return DayWindow(start=start, end=end)


def day_window(now: Optional[datetime] = None, tz: str = "UTC") -> DayWindow:
    """
    Computes today's boundaries in the given timezone. Called once per cycle;
    the result is passed explicitly to every aggregator.
    """
    return window_for_day(current_time(now, tz).date(), tz)


def parse_timestamp(value: Any, tz: str = "UTC", dayfirst: bool = True) -> pd.Timestamp:
    """
    Tolerant timestamp parser for sheet cells. ISO strings are read as-is,
    other strings honour `dayfirst`. Naive values are localized to `tz`.
    Returns NaT for blank or unparseable input.
    """
    if value is None:
        return pd.NaT
    if isinstance(value, (datetime, date, pd.Timestamp)):
        ts = pd.Timestamp(value)
    else:
        text = str(value).strip()
        if not text:
            return pd.NaT
        try:
            if _ISO_PREFIX.match(text):
                ts = pd.Timestamp(text)
            else:
                ts = pd.to_datetime(text, dayfirst=dayfirst)
        except (ValueError, TypeError, OverflowError):
            return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    return _localize(ts, tz)


def format_timestamp(ts: pd.Timestamp) -> str:
    return ts.isoformat(timespec="seconds")


def normalize_text(value: Any) -> str:
    """
    Identity key for names: trimmed, lowercased, accents stripped (NFD) and
    whitespace collapsed. "  Limón  Sutil " -> "limon sutil".
    """
    if value is None:
        return ""
    if not isinstance(value, str) and pd.isna(value):
        return ""
    text = unicodedata.normalize("NFD", str(value).strip().lower())
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Mn")
    return _WHITESPACE.sub(" ", text).strip()


def to_float(value: Any) -> Optional[float]:
    """
    Parses a numeric cell, accepting a comma as decimal separator
    ("2,5" -> 2.5, "1.234,5" -> 1234.5). Returns None when unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        result = float(value)
        return None if math.isnan(result) or math.isinf(result) else result

    text = str(value).strip().replace(" ", "")
    if not text:
        return None
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")

    try:
        result = float(text)
    except ValueError:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def parse_number(value: Any, default: float = 0.0) -> float:
    """Like `to_float`, but coerces unparseable input to `default`."""
    result = to_float(value)
    return default if result is None else result


def get_date_suffix_for_filename(day: Optional[date] = None) -> str:
    """Returns the date as a YYYY-MM-DD string for filenames."""
    return (day or datetime.now().date()).strftime("%Y-%m-%d")


def load_csv(file_path: Path) -> pd.DataFrame | None:
    """
    Reads a sheet with every cell kept as a string (blanks stay "").
    Tries UTF-8 with BOM first and falls back to latin-1.
    """
    read_kwargs = {"dtype": str, "keep_default_na": False}
    try:
        return pd.read_csv(file_path, encoding="utf-8-sig", **read_kwargs)

    except UnicodeDecodeError:
        logger.info(
            f"UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'."
        )
        try:
            return pd.read_csv(file_path, encoding="latin-1", **read_kwargs)
        except (OSError, pd.errors.ParserError) as e_latin1:
            logger.error(
                f"Could not read {file_path.name} even with latin-1. Reason: {e_latin1}"
            )
            return None

    except FileNotFoundError:
        logger.info(f"Sheet not found at {file_path}, skipping.")
        return None

    except pd.errors.EmptyDataError:
        # A zero-byte file is an existing sheet with no headers yet
        return pd.DataFrame()

    except (OSError, pd.errors.ParserError) as e_general:
        logger.error(
            f"An unexpected error occurred while reading {file_path.name}. Reason: {e_general}"
        )
        return None
