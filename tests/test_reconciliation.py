"""
Tests for the daily reconciliation pipeline, end to end over a CSV store.

Tests cover:
- yesterday + purchases - sales = today for every base product
- Products with no activity and products known only from the ledger
- Sort order and report replacement
- Re-running the same day gives the same report
- Approval reset at the start of a cycle
- Fatal missing sheet / column with no partial write
- Purchase unit inconsistencies surfaced in Notes
"""
from datetime import timedelta

import pytest

from conftest import ACQUISITION_HEADERS, NOW, ledger_frame, write_sheet
from inventory_ledger.errors import MissingDataSourceError
from inventory_ledger.parsers import parse_ledger_sheet, parse_report_sheet
from inventory_ledger.pipelines import ReconciliationPipeline
from inventory_ledger.schemas import ProductState, WorkflowStatus, sheet_columns


def run(store, config, now=NOW):
    return ReconciliationPipeline(store, config, now=now, test_mode=True).run()


def rows_by_name(rows):
    return {row.base_product: row for row in rows}


# ============================================================================
# Report contents
# ============================================================================

class TestReportRows:
    def test_lemon_scenario(self, seeded_store, config):
        result = run(seeded_store, config)
        lemon = rows_by_name(result.report_rows)["Lemon"]

        assert lemon.inventory_yesterday == 20
        assert lemon.purchases_today == 16
        assert lemon.sales_today == 3
        assert lemon.inventory_today_estimated == 33
        assert lemon.stock_real_user_entered is None
        assert lemon.discrepancy is None

    def test_potato_uses_estimate_and_extracted_format(self, seeded_store, config):
        potato = rows_by_name(run(seeded_store, config).report_rows)["Potato"]
        assert (
            potato.inventory_yesterday,
            potato.purchases_today,
            potato.sales_today,
            potato.inventory_today_estimated,
        ) == (10, 25, 4, 31)

    def test_catalog_product_without_activity_is_reported(self, seeded_store, config):
        garlic = rows_by_name(run(seeded_store, config).report_rows)["garlic"]
        assert garlic.inventory_yesterday == 0
        assert garlic.inventory_today_estimated == 0

    def test_conservation(self, seeded_store, config):
        for row in run(seeded_store, config).report_rows:
            expected = row.inventory_yesterday + row.purchases_today - row.sales_today
            assert abs(row.inventory_today_estimated - expected) < 1e-9

    def test_sorted_by_display_name(self, seeded_store, config):
        names = [row.base_product for row in run(seeded_store, config).report_rows]
        assert names == ["garlic", "Lemon", "Potato"]

    def test_ledger_only_product_is_carried(self, seeded_store, config):
        seeded_store.append(
            config.ledger_sheet,
            ledger_frame([["2026-10-18T20:00:00-03:00", "Onion", "4", "", "kg"]]),
        )
        onion = rows_by_name(run(seeded_store, config).report_rows)["Onion"]
        assert onion.inventory_yesterday == 4
        assert onion.inventory_today_estimated == 4

    def test_diagnostics(self, seeded_store, config):
        result = run(seeded_store, config)
        assert result.unmatched_product_names == ["Mystery Item"]
        assert result.excluded_count == 1
        assert result.inconsistencies == {}


# ============================================================================
# Writes
# ============================================================================

class TestWrites:
    def test_report_sheet_replaced(self, seeded_store, config):
        write_sheet(
            seeded_store,
            config.report_sheet,
            ["Base Product", "Inventory Today (Estimated)"],
            [["Stale product", "99"]],
        )
        run(seeded_store, config)

        report = parse_report_sheet(seeded_store.read(config.report_sheet))
        assert [row.base_product for row in report] == ["garlic", "Lemon", "Potato"]
        assert rows_by_name(report)["Lemon"].inventory_today_estimated == 33

    def test_one_ledger_entry_per_product(self, seeded_store, config):
        run(seeded_store, config)

        ledger = parse_ledger_sheet(seeded_store.read(config.ledger_sheet))
        assert len(ledger) == 6
        new = ledger.iloc[3:]
        assert list(new["base_product"]) == ["garlic", "Lemon", "Potato"]
        assert set(new["timestamp"]) == {"2026-10-19T18:00:00-03:00"}
        assert list(new["real_quantity"]) == ["", "", ""]
        assert list(new["unit"]) == ["unidad", "kg", "kg"]
        assert float(new.iloc[1]["estimated_quantity"]) == 33

    def test_cycle_recorded_as_open(self, seeded_store, config):
        run(seeded_store, config)

        cycle = seeded_store.read(config.cycle_sheet)
        assert cycle.to_dict("records") == [
            {
                "Day": "2026-10-19",
                "Opened At": "2026-10-19T18:00:00-03:00",
                "Closed At": "",
            }
        ]

    def test_same_day_rerun_gives_same_report(self, seeded_store, config):
        first = run(seeded_store, config)
        second = run(seeded_store, config, now=NOW + timedelta(hours=1))

        assert [row.model_dump() for row in first.report_rows] == [
            row.model_dump() for row in second.report_rows
        ]


# ============================================================================
# Workflow state
# ============================================================================

class TestApprovalReset:
    def test_approved_products_return_to_pending(self, seeded_store, config):
        write_sheet(
            seeded_store,
            config.workflow_sheet,
            sheet_columns(ProductState),
            [
                ["Lemon", "approved", "", "ana", "2026-10-18T19:00:00-03:00"],
                ["Potato", "verifying", "recount", "ana", "2026-10-18T19:00:00-03:00"],
            ],
        )
        result = run(seeded_store, config)

        assert result.approvals_reset == 1
        assert "lemon" not in result.states
        assert result.states["potato"].state == WorkflowStatus.VERIFYING

        stored = seeded_store.read(config.workflow_sheet)
        assert list(stored["Base Product"]) == ["Potato"]
        assert list(stored["Notes"]) == ["recount"]

    def test_no_workflow_sheet_is_fine(self, seeded_store, config):
        result = run(seeded_store, config)
        assert result.approvals_reset == 0
        assert not seeded_store.exists(config.workflow_sheet)


# ============================================================================
# Fatal errors
# ============================================================================

class TestMissingSources:
    @pytest.mark.parametrize("sheet_attr", ["catalog_sheet", "orders_sheet", "ledger_sheet"])
    def test_missing_sheet_aborts_without_writes(self, seeded_store, config, sheet_attr):
        ledger_before = seeded_store.path_for(config.ledger_sheet).read_bytes()
        seeded_store.path_for(getattr(config, sheet_attr)).unlink()

        with pytest.raises(MissingDataSourceError) as exc_info:
            run(seeded_store, config)

        assert exc_info.value.sheet == getattr(config, sheet_attr)
        assert not seeded_store.exists(config.report_sheet)
        if sheet_attr != "ledger_sheet":
            assert seeded_store.path_for(config.ledger_sheet).read_bytes() == ledger_before

    def test_missing_column_aborts_without_writes(self, seeded_store, config):
        write_sheet(
            seeded_store,
            config.acquisitions_sheet,
            ["Base Product", "Quantity"],
            [["Lemon", "2"]],
        )
        with pytest.raises(MissingDataSourceError) as exc_info:
            run(seeded_store, config)

        assert exc_info.value.column == "Format"
        assert "Format" in str(exc_info.value)
        assert not seeded_store.exists(config.report_sheet)


# ============================================================================
# Unit conversion strategy
# ============================================================================

def test_unit_inconsistencies_in_notes(seeded_store, config):
    config = config.model_copy(update={"purchase_strategy": "unit_conversion"})
    write_sheet(
        seeded_store,
        config.acquisitions_sheet,
        ACQUISITION_HEADERS,
        [["Lemon", "Box", "2"], ["Potato", "Malla (25 kg)", "1"]],
    )
    result = run(seeded_store, config)
    rows = rows_by_name(result.report_rows)

    assert rows["Potato"].purchases_today == 25
    assert rows["Potato"].notes == ""
    assert rows["Lemon"].purchases_today == 0
    assert rows["Lemon"].inventory_today_estimated == 17
    assert "Box: incompatible unit" in rows["Lemon"].notes
    assert list(result.inconsistencies) == ["Lemon"]
