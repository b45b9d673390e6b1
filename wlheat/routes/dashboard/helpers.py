"""Shared helper functions for dashboard routes."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from wlheat.utils.filter_state import DateRange, FilterState, Metric, Selector


def _parse_selector(value: Any) -> Selector:
    """Dropdown value to selector.

    The "All" placeholder option posts an empty string, so ``""`` and ``None``
    mean no constraint. ``{"exact": ""}`` asks for the empty string itself.
    """
    if isinstance(value, Mapping):
        if "exact" in value and value["exact"] is not None:
            return Selector.exact(str(value["exact"]))
        return Selector.any()
    if value is None or value == "":
        return Selector.any()
    return Selector.exact(str(value))


def _parse_date_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def build_state(payload: Mapping[str, Any]) -> FilterState:
    """Build a ``FilterState`` snapshot from a JSON payload."""
    start = _parse_date_text(payload.get("start_date"))
    end = _parse_date_text(payload.get("end_date"))
    return FilterState(
        branch=_parse_selector(payload.get("branch")),
        group=_parse_selector(payload.get("group")),
        date_range=DateRange(start, end) if (start or end) else None,
        metric=Metric.parse(payload.get("metric")),
    )


__all__ = ["build_state"]
