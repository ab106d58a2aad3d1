from .day_close import DayCloseResult, DayClosePipeline
from .reconciliation import ReconciliationPipeline, ReconciliationResult

__all__ = [
    "DayCloseResult",
    "DayClosePipeline",
    "ReconciliationPipeline",
    "ReconciliationResult",
]
