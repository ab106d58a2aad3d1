from typing import Optional


class InventoryLedgerError(Exception):
    """Base error for a reconciliation cycle. Carries an operator-facing
    message plus optional technical detail."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class MissingDataSourceError(InventoryLedgerError):
    """A required sheet or a required column is absent."""

    def __init__(self, sheet: str, column: Optional[str] = None):
        if column:
            message = f"Required column '{column}' not found in sheet '{sheet}'"
        else:
            message = f"Required sheet '{sheet}' not found"
        super().__init__(message)
        self.sheet = sheet
        self.column = column


class InvalidTransitionError(InventoryLedgerError):
    """A lifecycle operation was requested in a phase that does not allow it."""


class UnknownProductError(InventoryLedgerError):
    """The base product is not present in the working report."""

    def __init__(self, base_product: str):
        super().__init__(f"Base product '{base_product}' is not in the report")
        self.base_product = base_product
