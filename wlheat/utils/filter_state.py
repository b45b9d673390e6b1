# filter_state.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from wlheat.utils.date_keys import encode


@dataclass(frozen=True)
class Selector:
    """Either no opinion (``value is None``) or an exact string to match.

    ``Selector.exact("")`` is a real constraint on the empty string and is
    never confused with ``Selector.any()``.
    """

    value: Optional[str] = None

    @classmethod
    def any(cls) -> "Selector":
        return cls(None)

    @classmethod
    def exact(cls, value: str) -> "Selector":
        if value is None:
            raise ValueError("exact selector needs a value")
        return cls(str(value))

    @property
    def is_any(self) -> bool:
        return self.value is None

    def __repr__(self) -> str:
        return "Any" if self.is_any else f"Exact({self.value!r})"


class Metric(str, Enum):
    SALES_AMOUNT = "sales"
    TICKET_COUNT = "tickets"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Metric":
        """Map UI values (``"Tickets"``, ``"tickets"``...) to a metric; sales otherwise."""
        if isinstance(value, Metric):
            return value
        if str(value or "").strip().lower() in ("tickets", "ticketcount", "ticket_count"):
            return cls.TICKET_COUNT
        return cls.SALES_AMOUNT


@dataclass(frozen=True)
class DateRange:
    """Date bounds as typed by the user. Either side may be missing."""

    start: Optional[str] = None
    end: Optional[str] = None

    def keys(self) -> Tuple[Optional[int], Optional[int]]:
        return encode(self.start), encode(self.end)

    @property
    def is_empty(self) -> bool:
        return not self.start and not self.end


@dataclass(frozen=True)
class FilterState:
    branch: Selector = field(default_factory=Selector.any)
    group: Selector = field(default_factory=Selector.any)
    date_range: Optional[DateRange] = None
    metric: Metric = Metric.SALES_AMOUNT

    # -------- convenience --------
    @classmethod
    def default(cls) -> "FilterState":
        """The cleared state: every selector open, no dates, sales metric."""
        return cls()
