"""
Unit tests for ExpressionCompiler.
"""
import logging

import pytest

from tests.conftest import BOM_KEY
from wlheat.services.capability import SchemaCapability
from wlheat.services.compiler import ExpressionCompiler, FieldMapping
from wlheat.utils.filter_state import DateRange, FilterState, Metric, Selector
from wlheat.utils.predicates import All, Equals, NumericRange, StringSetMembership


def _state(branch=None, group=None, start=None, end=None):
    return FilterState(
        branch=Selector.any() if branch is None else Selector.exact(branch),
        group=Selector.any() if group is None else Selector.exact(group),
        date_range=DateRange(start, end) if (start or end) else None,
    )


def _codes(compiled):
    return [d.code for d in compiled.diagnostics]


class TestSelectors:
    """Branch and product group clauses"""

    def test_nothing_selected_matches_everything(self, compiler, with_key, without_key):
        for capability in (with_key, without_key):
            assert compiler.compile(FilterState.default(), capability) == All()
            assert compiler.compile(FilterState.default(), capability).to_expression() == ["all"]

    def test_branch_then_group(self, compiler, with_key):
        tree = compiler.compile(_state("Bryan", "Tires"), with_key)
        assert tree == All((Equals("BranchName", "Bryan"), Equals("ProductGroupLevel1", "Tires")))

    def test_literal_all_is_not_a_wildcard(self, compiler, with_key):
        tree = compiler.compile(_state("All"), with_key)
        assert tree == All((Equals("BranchName", "All"),))

    def test_exact_empty_string(self, compiler, with_key):
        tree = compiler.compile(_state(""), with_key)
        assert tree == All((Equals("BranchName", ""),))

    def test_selector_values_are_not_trimmed(self, compiler, with_key):
        tree = compiler.compile(_state(" Bryan "), with_key)
        assert tree.children[0].literal == " Bryan "

    def test_metric_does_not_change_the_filter(self, compiler, with_key):
        sales = FilterState(branch=Selector.exact("Bryan"))
        tickets = FilterState(branch=Selector.exact("Bryan"), metric=Metric.TICKET_COUNT)
        assert compiler.compile(sales, with_key) == compiler.compile(tickets, with_key)


class TestDateRange:
    """Date clause on both capability paths"""

    def test_enumerated_dates_without_key(self, compiler, without_key):
        tree = compiler.compile(_state("Bryan", start="2026-01-01", end="2026-01-03"), without_key)
        assert tree == All(
            (
                Equals("BranchName", "Bryan"),
                StringSetMembership("SaleDate", ("1/1/2026", "1/2/2026", "1/3/2026")),
            )
        )

    def test_numeric_range_with_key(self, compiler, with_key):
        tree = compiler.compile(_state("Bryan", start="2026-01-01", end="2026-01-03"), with_key)
        assert tree == All(
            (
                Equals("BranchName", "Bryan"),
                NumericRange("SaleDateKey", 20260101, 20260103, (BOM_KEY,)),
            )
        )
        assert not any(isinstance(c, StringSetMembership) for c in tree.children)

    def test_reversed_range_is_normalized(self, compiler, with_key, without_key):
        forward = _state(start="2026-01-01", end="2026-03-10")
        backward = _state(start="2026-03-10", end="2026-01-01")
        assert compiler.compile(backward, with_key) == compiler.compile(forward, with_key)
        assert compiler.compile(backward, without_key) == compiler.compile(forward, without_key)
        assert compiler.compile(backward, with_key).children[0].minimum == 20260101

    def test_us_format_input(self, compiler, with_key):
        tree = compiler.compile(_state(start="1/1/2026", end="1/3/2026"), with_key)
        assert tree.children[0].minimum == 20260101
        assert tree.children[0].maximum == 20260103

    def test_half_open_with_key(self, compiler, with_key):
        tree = compiler.compile(_state(start="2026-01-01"), with_key)
        assert tree.children == (NumericRange("SaleDateKey", 20260101, None, (BOM_KEY,)),)
        tree = compiler.compile(_state(end="2026-01-03"), with_key)
        assert tree.children == (NumericRange("SaleDateKey", None, 20260103, (BOM_KEY,)),)

    def test_half_open_without_key_is_skipped(self, compiler, without_key):
        compiled = compiler.compile_with_diagnostics(_state(start="2026-01-01"), without_key)
        assert compiled.predicate == All()
        assert _codes(compiled) == ["date_range_open_ended"]

    def test_range_too_large(self, compiler, without_key, caplog):
        with caplog.at_level(logging.WARNING, logger="wlheat.compiler"):
            compiled = compiler.compile_with_diagnostics(
                _state("Bryan", start="2025-01-01", end="2026-06-01"), without_key
            )
        assert compiled.predicate == All((Equals("BranchName", "Bryan"),))
        assert _codes(compiled) == ["date_range_too_large"]
        assert "date_range_too_large" in caplog.text

    def test_largest_enumerable_range(self, compiler, without_key):
        tree = compiler.compile(_state(start="2025-01-01", end="2026-01-06"), without_key)
        assert len(tree.children[0].values) == 371

    def test_range_too_large_is_fine_with_key(self, compiler, with_key):
        compiled = compiler.compile_with_diagnostics(
            _state(start="2020-01-01", end="2026-06-01"), with_key
        )
        assert compiled.diagnostics == ()
        assert compiled.predicate.children[0].minimum == 20200101

    def test_unparseable_bound(self, compiler, with_key):
        compiled = compiler.compile_with_diagnostics(
            _state(start="someday", end="2026-01-03"), with_key
        )
        assert _codes(compiled) == ["date_bound_unparseable"]
        assert compiled.predicate.children == (
            NumericRange("SaleDateKey", None, 20260103, (BOM_KEY,)),
        )

    def test_both_bounds_unparseable(self, compiler, without_key):
        compiled = compiler.compile_with_diagnostics(_state(start="x", end="y"), without_key)
        assert compiled.predicate == All()
        assert _codes(compiled) == ["date_bound_unparseable", "date_bound_unparseable"]

    def test_non_calendar_day_without_key(self, compiler, without_key):
        compiled = compiler.compile_with_diagnostics(
            _state(start="2026-02-20", end="2026-02-31"), without_key
        )
        assert compiled.predicate == All()
        assert _codes(compiled) == ["date_range_unparseable"]

    def test_primary_key_stays_first_when_only_alternate_found(self, compiler):
        capability = SchemaCapability(True, (BOM_KEY,), sampled=True)
        tree = compiler.compile(_state(start="2026-01-01", end="2026-01-03"), capability)
        assert tree.children[0] == NumericRange("SaleDateKey", 20260101, 20260103, (BOM_KEY,))
        assert tree.children[0].fields == ("SaleDateKey", BOM_KEY)
        assert tree.children[0].matches({BOM_KEY: 20260102})

    def test_compiled_tree_matches_records(self, compiler, with_key, without_key):
        state = _state("Bryan", start="2026-01-01", end="2026-01-03")
        inside = {"BranchName": "Bryan", "SaleDate": "1/2/2026", "SaleDateKey": 20260102}
        outside = {"BranchName": "Bryan", "SaleDate": "1/4/2026", "SaleDateKey": 20260104}
        for capability in (with_key, without_key):
            tree = compiler.compile(state, capability)
            assert tree.matches(inside)
            assert not tree.matches(outside)


class TestCompilerConfig:
    """Field mapping and limits"""

    def test_deterministic(self, compiler, without_key):
        state = _state("Bryan", "Tires", "2026-01-01", "2026-02-01")
        first = compiler.compile(state, without_key)
        assert all(compiler.compile(state, without_key) == first for _ in range(5))
        assert compiler.compile(state, without_key).to_expression() == first.to_expression()

    def test_from_config(self):
        fields = FieldMapping.from_config(
            {
                "BRANCH_FIELD": "Store",
                "GROUP_FIELD": "Dept",
                "DATE_TEXT_FIELD": "Day",
                "DATE_KEY_FIELD": "DayKey",
                "DATE_KEY_ALT_FIELDS": ["OldDayKey"],
            }
        )
        assert fields == FieldMapping("Store", "Dept", "Day", "DayKey", ("OldDayKey",))

        compiled = ExpressionCompiler(fields).compile(
            _state("A", "B", "2026-01-01", "2026-01-02"),
            SchemaCapability(True, ("DayKey",), sampled=True),
        )
        assert compiled == All(
            (Equals("Store", "A"), Equals("Dept", "B"), NumericRange("DayKey", 20260101, 20260102, ("OldDayKey",)))
        )

    def test_from_config_defaults(self):
        assert FieldMapping.from_config({}) == FieldMapping()

    @pytest.mark.parametrize("max_days, expected", [(1, []), (2, ["1/1/2026", "1/2/2026", "1/3/2026"])])
    def test_max_days(self, fields, without_key, max_days, expected):
        tree = ExpressionCompiler(fields, max_days=max_days).compile(
            _state(start="2026-01-01", end="2026-01-03"), without_key
        )
        if expected:
            assert tree.children == (StringSetMembership("SaleDate", tuple(expected)),)
        else:
            assert tree == All()
