"""Predicate trees over feature property records.

A tree is built once per filter change and then handed to whatever needs it:

- ``to_expression()`` gives the Mapbox GL style expression set on map layers,
- ``matches(record)`` evaluates it against one property dict,
- ``to_sql()`` / ``All.to_sql_where()`` render DuckDB ``WHERE`` fragments for
  the local copy of the data.

All three agree on the numeric coercion rules through :func:`safe_number`.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

Expression = Any
SqlFragment = Tuple[str, List[Any]]


# ---------- numeric coercion ----------

def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def safe_number(record: Mapping[str, Any], fields: Sequence[str]) -> float:
    """First numeric value among ``fields`` in ``record``; ``0.0`` if there is none.

    Total: never raises and never returns NaN or infinity.
    """
    for name in fields:
        if name in record:
            number = _to_number(record.get(name))
            if number is not None:
                return number
    return 0.0


def safe_number_expression(fields: Sequence[str]) -> Expression:
    """Style-expression counterpart of :func:`safe_number`."""
    expr: Expression = 0
    for name in reversed(list(fields)):
        # null properties fall through like missing ones
        expr = ["case", ["!=", ["get", name], None], ["to-number", ["get", name], expr], expr]
    return expr


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def safe_number_sql(fields: Sequence[str], columns: Optional[Iterable[str]]) -> str:
    present = [f for f in fields if columns is None or f in columns]
    if not present:
        return "0"
    casts = []
    for name in present:
        cast = f"TRY_CAST({_quote(name)} AS DOUBLE)"
        # inf and NaN read as missing, like safe_number
        casts.append(f"CASE WHEN isfinite({cast}) THEN {cast} END")
    return f"COALESCE({', '.join(casts)}, 0)"


# ---------- nodes ----------

class Predicate:
    """Base class of every predicate tree node."""

    def to_expression(self) -> Expression:
        raise NotImplementedError

    def matches(self, record: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def to_sql(self, columns: Optional[Iterable[str]] = None) -> SqlFragment:
        raise NotImplementedError


@dataclass(frozen=True)
class Equals(Predicate):
    field: str
    literal: str

    def to_expression(self) -> Expression:
        return ["==", ["get", self.field], self.literal]

    def matches(self, record: Mapping[str, Any]) -> bool:
        value = record.get(self.field)
        return isinstance(value, str) and value == self.literal

    def to_sql(self, columns: Optional[Iterable[str]] = None) -> SqlFragment:
        if columns is not None and self.field not in columns:
            return "FALSE", []
        return f"CAST({_quote(self.field)} AS VARCHAR) = ?", [self.literal]


@dataclass(frozen=True)
class NumericRange(Predicate):
    """Inclusive bounds on a numeric field, read through a fallback chain."""

    field: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    fallback_fields: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "fallback_fields", tuple(self.fallback_fields))

    @property
    def fields(self) -> Tuple[str, ...]:
        return (self.field,) + tuple(f for f in self.fallback_fields if f != self.field)

    def to_expression(self) -> Expression:
        value = safe_number_expression(self.fields)
        parts: List[Expression] = []
        if self.minimum is not None:
            parts.append([">=", value, self.minimum])
        if self.maximum is not None:
            parts.append(["<=", value, self.maximum])
        if len(parts) == 1:
            return parts[0]
        return ["all", *parts]

    def matches(self, record: Mapping[str, Any]) -> bool:
        value = safe_number(record, self.fields)
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True

    def to_sql(self, columns: Optional[Iterable[str]] = None) -> SqlFragment:
        value = safe_number_sql(self.fields, columns)
        clauses: List[str] = []
        params: List[Any] = []
        if self.minimum is not None:
            clauses.append(f"{value} >= ?")
            params.append(self.minimum)
        if self.maximum is not None:
            clauses.append(f"{value} <= ?")
            params.append(self.maximum)
        if not clauses:
            return "TRUE", []
        return " AND ".join(clauses), params


@dataclass(frozen=True)
class StringSetMembership(Predicate):
    field: str
    values: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    def to_expression(self) -> Expression:
        if not self.values:
            return False
        return ["match", ["to-string", ["get", self.field]], list(self.values), True, False]

    def matches(self, record: Mapping[str, Any]) -> bool:
        value = record.get(self.field)
        return value is not None and str(value) in self.values

    def to_sql(self, columns: Optional[Iterable[str]] = None) -> SqlFragment:
        if not self.values or (columns is not None and self.field not in columns):
            return "FALSE", []
        placeholders = ", ".join(["?"] * len(self.values))
        return f"CAST({_quote(self.field)} AS VARCHAR) IN ({placeholders})", list(self.values)


@dataclass(frozen=True)
class All(Predicate):
    """Conjunction. An empty ``All`` matches everything."""

    children: Tuple[Predicate, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))

    def to_expression(self) -> Expression:
        return ["all", *(child.to_expression() for child in self.children)]

    def matches(self, record: Mapping[str, Any]) -> bool:
        return all(child.matches(record) for child in self.children)

    def to_sql(self, columns: Optional[Iterable[str]] = None) -> SqlFragment:
        clauses: List[str] = []
        params: List[Any] = []
        for child in self.children:
            clause, child_params = child.to_sql(columns)
            clauses.append(f"({clause})")
            params.extend(child_params)
        if not clauses:
            return "TRUE", []
        return " AND ".join(clauses), params

    def to_sql_where(
        self,
        available_columns: Optional[Iterable[str]] = None,
    ) -> SqlFragment:
        """Build a parameterised WHERE clause (DuckDB compatible), ``1=1`` when empty.

        Fields missing from ``available_columns`` never match, except numeric
        fields, which read as zero like they do on the map.
        """
        if not self.children:
            return "1=1", []
        columns = set(available_columns) if available_columns is not None else None
        return self.to_sql(columns)


__all__ = [
    "All",
    "Equals",
    "NumericRange",
    "Predicate",
    "StringSetMembership",
    "safe_number",
    "safe_number_expression",
    "safe_number_sql",
]
