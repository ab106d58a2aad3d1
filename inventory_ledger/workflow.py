"""
Per-product workflow state and the Real Stock edit event.

A verified count typed into the report marks the product `approved` and
leaves a DiscrepancyRecord (real - estimated). Anything that is not a number
puts the product back to `pending`. The ledger itself is only touched at
day close.

The Cycle sheet holds a single record: the day the report was opened for
and, once closed, when. Edits are refused on a closed day.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from . import data_handler
from .config import ReconciliationConfig
from .errors import InvalidTransitionError, UnknownProductError
from .parsers import parse_cycle_sheet, parse_report_sheet, parse_workflow_sheet
from .schemas import (
    CycleRecord,
    DiscrepancyRecord,
    ProductState,
    ReportRow,
    WorkflowStatus,
    sheet_columns,
)
from .store import CsvStore
from .utils import current_time, format_timestamp, normalize_text, to_float

logger = logging.getLogger(__name__)


@dataclass
class EditOutcome:
    report_rows: list[ReportRow]
    states: dict[str, ProductState]
    discrepancies: list[DiscrepancyRecord] = field(default_factory=list)
    approved: int = 0
    pending: int = 0


def reset_approvals(
    states: dict[str, ProductState],
) -> tuple[dict[str, ProductState], int]:
    """
    Drops every `approved` state. Approval covers one day's report only; a
    product without a state record reads as pending.
    """
    kept = {
        key: state
        for key, state in states.items()
        if state.state != WorkflowStatus.APPROVED
    }
    return kept, len(states) - len(kept)


def apply_stock_edits(
    report_rows: list[ReportRow],
    states: dict[str, ProductState],
    edits: Iterable[tuple[str, Any]],
    updated_by: str,
    timestamp: str,
) -> EditOutcome:
    """
    Applies (base product, raw value) edits to the report in memory.
    Every base product is checked before anything changes.
    """
    edits = list(edits)
    rows_by_key = {normalize_text(row.base_product): row for row in report_rows}
    for base_product, _ in edits:
        if normalize_text(base_product) not in rows_by_key:
            raise UnknownProductError(base_product)

    updated_rows = {key: row.model_copy() for key, row in rows_by_key.items()}
    new_states = dict(states)
    outcome = EditOutcome(report_rows=[], states=new_states)

    for base_product, raw_value in edits:
        key = normalize_text(base_product)
        row = updated_rows[key]
        value = to_float(raw_value)
        previous = new_states.get(key)

        if value is None:
            row.stock_real_user_entered = None
            row.discrepancy = None
            status = WorkflowStatus.PENDING
            outcome.pending += 1
        else:
            row.stock_real_user_entered = value
            row.discrepancy = value - row.inventory_today_estimated
            status = WorkflowStatus.APPROVED
            outcome.approved += 1
            outcome.discrepancies.append(
                DiscrepancyRecord(
                    timestamp=timestamp,
                    base_product=row.base_product,
                    estimated_quantity=row.inventory_today_estimated,
                    real_quantity=value,
                    discrepancy=row.discrepancy,
                )
            )

        new_states[key] = ProductState(
            base_product=row.base_product,
            state=status,
            notes=previous.notes if previous else "",
            updated_by=updated_by,
            updated_at=timestamp,
        )

    outcome.report_rows = [
        updated_rows[normalize_text(row.base_product)] for row in report_rows
    ]
    return outcome


def read_states(store: CsvStore, config: ReconciliationConfig) -> dict[str, ProductState]:
    frame = store.read_or_empty(config.workflow_sheet, sheet_columns(ProductState))
    return parse_workflow_sheet(frame, config.workflow_sheet)


def write_states(
    store: CsvStore, config: ReconciliationConfig, states: dict[str, ProductState]
) -> None:
    ordered = sorted(states.values(), key=lambda s: normalize_text(s.base_product))
    store.write(config.workflow_sheet, data_handler.rows_to_frame(ordered, ProductState))


def read_cycle(store: CsvStore, config: ReconciliationConfig) -> Optional[CycleRecord]:
    frame = store.read_or_empty(config.cycle_sheet, sheet_columns(CycleRecord))
    return parse_cycle_sheet(frame, config.cycle_sheet)


def write_cycle(
    store: CsvStore, config: ReconciliationConfig, cycle: CycleRecord
) -> None:
    store.write(config.cycle_sheet, data_handler.rows_to_frame([cycle], CycleRecord))


def ensure_day_open(store: CsvStore, config: ReconciliationConfig) -> None:
    """Raises InvalidTransitionError once the report's day has been closed."""
    cycle = read_cycle(store, config)
    if cycle is not None and cycle.is_closed:
        raise InvalidTransitionError(
            f"The day {cycle.day.isoformat()} is already closed",
            detail="open the next day before editing",
        )


def apply_stock_updates(
    store: CsvStore,
    config: ReconciliationConfig,
    updates: Iterable[tuple[str, Any]],
    updated_by: str = "",
    now: Optional[datetime] = None,
) -> EditOutcome:
    """Applies a batch of Real Stock edits with one read and one write per sheet."""
    ensure_day_open(store, config)
    report_rows = parse_report_sheet(store.read(config.report_sheet), config.report_sheet)
    states = read_states(store, config)
    timestamp = format_timestamp(current_time(now, config.timezone))

    outcome = apply_stock_edits(report_rows, states, updates, updated_by, timestamp)

    store.write(
        config.report_sheet, data_handler.rows_to_frame(outcome.report_rows, ReportRow)
    )
    write_states(store, config, outcome.states)
    if outcome.discrepancies:
        store.append(
            config.discrepancy_sheet,
            data_handler.rows_to_frame(outcome.discrepancies, DiscrepancyRecord),
        )

    logger.info(
        f"📝 Stock edits saved: {outcome.approved} approved, {outcome.pending} pending."
    )
    for record in outcome.discrepancies:
        if record.discrepancy:
            logger.info(
                f"  > {record.base_product}: estimated {record.estimated_quantity:g}, "
                f"real {record.real_quantity:g} ({record.discrepancy:+g})"
            )
    return outcome


def record_stock_edit(
    store: CsvStore,
    config: ReconciliationConfig,
    base_product: str,
    raw_value: Any,
    updated_by: str = "",
    now: Optional[datetime] = None,
) -> EditOutcome:
    """A single Real Stock edit event on the working report."""
    return apply_stock_updates(
        store, config, [(base_product, raw_value)], updated_by=updated_by, now=now
    )


def set_product_state(
    store: CsvStore,
    config: ReconciliationConfig,
    base_product: str,
    state: WorkflowStatus | str,
    notes: Optional[str] = None,
    updated_by: str = "",
    now: Optional[datetime] = None,
) -> ProductState:
    """Explicit state change, e.g. marking a product as `verifying` with a note."""
    if isinstance(state, WorkflowStatus):
        status = state
    else:
        status = WorkflowStatus(normalize_text(state))
    key = normalize_text(base_product)
    if not key:
        raise UnknownProductError(base_product)

    states = read_states(store, config)
    previous = states.get(key)
    states[key] = ProductState(
        base_product=previous.base_product if previous else base_product.strip(),
        state=status,
        notes=notes if notes is not None else (previous.notes if previous else ""),
        updated_by=updated_by,
        updated_at=format_timestamp(current_time(now, config.timezone)),
    )
    write_states(store, config, states)
    logger.info(f"🔖 {states[key].base_product}: {status.value}")
    return states[key]

