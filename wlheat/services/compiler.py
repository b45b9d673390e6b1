"""Compile a :class:`FilterState` into a predicate tree for the map layers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from wlheat.services.capability import SchemaCapability
from wlheat.utils.date_keys import MAX_ENUMERATED_DAYS, enumerate_range, span_days
from wlheat.utils.filter_state import DateRange, FilterState
from wlheat.utils.predicates import (
    All,
    Equals,
    NumericRange,
    Predicate,
    StringSetMembership,
)

logger = logging.getLogger("wlheat.compiler")


@dataclass(frozen=True)
class FieldMapping:
    """Property names of the data source."""

    branch: str = "BranchName"
    group: str = "ProductGroupLevel1"
    date_text: str = "SaleDate"
    date_key: str = "SaleDateKey"
    date_key_alternates: Tuple[str, ...] = ("\ufeffSaleDateKey",)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FieldMapping":
        return cls(
            branch=config.get("BRANCH_FIELD", cls.branch),
            group=config.get("GROUP_FIELD", cls.group),
            date_text=config.get("DATE_TEXT_FIELD", cls.date_text),
            date_key=config.get("DATE_KEY_FIELD", cls.date_key),
            date_key_alternates=tuple(
                config.get("DATE_KEY_ALT_FIELDS", ("\ufeffSaleDateKey",))
            ),
        )


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str

    def to_dict(self):
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class CompiledFilter:
    predicate: All
    diagnostics: Tuple[Diagnostic, ...] = ()


class ExpressionCompiler:
    """Turn filter selections into an ``All(...)`` predicate tree.

    With a numeric date key available the date range becomes a
    :class:`NumericRange`; otherwise it is expanded into the literal date
    texts of the range. When that expansion is not possible the date clause
    is dropped and a diagnostic is reported, so the map shows more rather
    than nothing.
    """

    def __init__(self, fields: Optional[FieldMapping] = None, max_days: int = MAX_ENUMERATED_DAYS):
        self.fields = fields or FieldMapping()
        self.max_days = max_days

    def compile(self, state: FilterState, capability: SchemaCapability) -> All:
        return self.compile_with_diagnostics(state, capability).predicate

    def compile_with_diagnostics(
        self,
        state: FilterState,
        capability: SchemaCapability,
    ) -> CompiledFilter:
        clauses: List[Predicate] = []
        diagnostics: List[Diagnostic] = []

        if not state.branch.is_any:
            clauses.append(Equals(self.fields.branch, state.branch.value))
        if not state.group.is_any:
            clauses.append(Equals(self.fields.group, state.group.value))

        date_clause = self._date_clause(state.date_range, capability, diagnostics)
        if date_clause is not None:
            clauses.append(date_clause)

        for diag in diagnostics:
            logger.warning("%s: %s", diag.code, diag.message)
        return CompiledFilter(All(tuple(clauses)), tuple(diagnostics))

    # ---------- dates ----------

    def _date_key_chain(self) -> Tuple[str, ...]:
        """Primary key name first, then the alternates, in configured order."""
        chain: List[str] = []
        for name in (self.fields.date_key,) + tuple(self.fields.date_key_alternates):
            if name not in chain:
                chain.append(name)
        return tuple(chain)

    def _date_clause(
        self,
        date_range: Optional[DateRange],
        capability: SchemaCapability,
        diagnostics: List[Diagnostic],
    ) -> Optional[Predicate]:
        if date_range is None or date_range.is_empty:
            return None

        start_key, end_key = date_range.keys()
        if date_range.start and start_key is None:
            diagnostics.append(
                Diagnostic("date_bound_unparseable", f"ignoring start date {date_range.start!r}")
            )
        if date_range.end and end_key is None:
            diagnostics.append(
                Diagnostic("date_bound_unparseable", f"ignoring end date {date_range.end!r}")
            )
        if start_key is not None and end_key is not None and start_key > end_key:
            start_key, end_key = end_key, start_key

        if capability.has_numeric_date_key:
            if start_key is None and end_key is None:
                return None
            chain = self._date_key_chain()
            return NumericRange(chain[0], start_key, end_key, chain[1:])

        if start_key is None and end_key is None:
            return None
        if start_key is None or end_key is None:
            diagnostics.append(
                Diagnostic(
                    "date_range_open_ended",
                    "open-ended date range needs the numeric date key; date filter skipped",
                )
            )
            return None

        span = span_days(start_key, end_key)
        if span is None:
            diagnostics.append(
                Diagnostic(
                    "date_range_unparseable",
                    f"{start_key}..{end_key} is not a calendar range; date filter skipped",
                )
            )
            return None
        if span > self.max_days:
            diagnostics.append(
                Diagnostic(
                    "date_range_too_large",
                    f"{span} days exceeds the {self.max_days} day limit; date filter skipped",
                )
            )
            return None

        dates = enumerate_range(start_key, end_key, self.max_days)
        if not dates:
            return None
        return StringSetMembership(self.fields.date_text, tuple(dates))


__all__ = ["CompiledFilter", "Diagnostic", "ExpressionCompiler", "FieldMapping"]
