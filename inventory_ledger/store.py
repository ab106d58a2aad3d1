"""
Tabular storage substrate: one CSV file per sheet inside a data directory.

Every cell is read back as a string so that human-entered values (decimal
commas, blank cells, void markers) reach the parsers untouched.
"""

import logging
from pathlib import Path

import pandas as pd

from .errors import MissingDataSourceError
from .utils import load_csv

logger = logging.getLogger(__name__)


class CsvStore:
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def path_for(self, sheet: str) -> Path:
        return self.data_dir / f"{sheet}.csv"

    def exists(self, sheet: str) -> bool:
        return self.path_for(sheet).exists()

    def read(self, sheet: str) -> pd.DataFrame:
        """Bulk-reads a whole sheet. Raises MissingDataSourceError when absent."""
        path = self.path_for(sheet)
        if not path.exists():
            raise MissingDataSourceError(sheet)
        df = load_csv(path)
        if df is None:
            raise MissingDataSourceError(sheet)
        return df

    def read_or_empty(self, sheet: str, columns: list[str]) -> pd.DataFrame:
        """Reads a lazily-created sheet, returning an empty frame when absent."""
        if not self.exists(sheet):
            return pd.DataFrame(columns=columns)
        return self.read(sheet)

    def write(self, sheet: str, df: pd.DataFrame) -> None:
        """Clears the sheet and writes the frame in a single bulk write."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        df.to_csv(self.path_for(sheet), index=False, encoding="utf-8")
        logger.debug(f"Wrote {len(df)} rows to '{sheet}'.")

    def append(self, sheet: str, df: pd.DataFrame) -> None:
        """Appends rows, creating the sheet (with headers) when it does not exist."""
        if df.empty:
            return
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(sheet)
        if path.exists() and path.stat().st_size > 0:
            existing = self.read(sheet)
            combined = pd.concat([existing, df.astype(object)], ignore_index=True)
            self.write(sheet, combined.fillna(""))
        else:
            self.write(sheet, df)
        logger.debug(f"Appended {len(df)} rows to '{sheet}'.")
