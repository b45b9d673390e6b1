"""Detect whether the live data exposes the precomputed numeric date key."""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

from wlheat.utils.date_keys import is_valid_key

logger = logging.getLogger("wlheat.capability")

SampleProvider = Callable[[str], Sequence[Mapping[str, Any]]]


@dataclass(frozen=True)
class SchemaCapability:
    has_numeric_date_key: bool = False
    resolved_fields: Tuple[str, ...] = ()
    sampled: bool = False

    def __post_init__(self):
        object.__setattr__(self, "resolved_fields", tuple(self.resolved_fields))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_numeric_date_key": self.has_numeric_date_key,
            "resolved_fields": list(self.resolved_fields),
            "sampled": self.sampled,
        }


UNKNOWN = SchemaCapability()


def _as_date_key(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real) and float(value).is_integer():
        return int(value)
    return None


class CapabilityProbe:
    """Inspect sample property records and cache the result per source generation.

    A probe that saw no records reports ``has_numeric_date_key=False`` and is
    not cached, so the next request probes again once data has arrived.
    """

    def __init__(
        self,
        date_key_field: str,
        alternate_fields: Sequence[str] = (),
        sample_size: int = 25,
    ):
        self.fields: Tuple[str, ...] = (date_key_field,) + tuple(
            f for f in alternate_fields if f != date_key_field
        )
        self.sample_size = max(int(sample_size), 1)
        self._cache: Dict[Tuple[str, Hashable], SchemaCapability] = {}

    def _sample(self, sample_provider: SampleProvider, source_id: str) -> List[Mapping[str, Any]]:
        try:
            records = sample_provider(source_id) or []
        except Exception as exc:
            logger.warning("Sample provider for %s failed: %s", source_id, exc)
            return []
        return list(records)[: self.sample_size]

    def detect(self, sample_provider: SampleProvider, source_id: str) -> SchemaCapability:
        records = self._sample(sample_provider, source_id)
        if not records:
            logger.info("No sample records for %s yet; assuming no numeric date key", source_id)
            return UNKNOWN

        found: List[str] = []
        for record in records:
            for name in self.fields:
                if name in found or name not in record:
                    continue
                if is_valid_key(_as_date_key(record.get(name))):
                    found.append(name)

        # configured order, not discovery order
        resolved = tuple(name for name in self.fields if name in found)
        capability = SchemaCapability(bool(resolved), resolved, sampled=True)
        logger.info(
            "Probed %d record(s) of %s: numeric date key %s%s",
            len(records),
            source_id,
            "present" if resolved else "absent",
            f" as {list(resolved)}" if resolved else "",
        )
        return capability

    def get(
        self,
        sample_provider: SampleProvider,
        source_id: str,
        generation: Hashable = 0,
        refresh: bool = False,
    ) -> SchemaCapability:
        key = (source_id, generation)
        if not refresh and key in self._cache:
            return self._cache[key]
        capability = self.detect(sample_provider, source_id)
        if capability.sampled:
            # drop entries for older generations of this source
            self._cache = {k: v for k, v in self._cache.items() if k[0] != source_id}
            self._cache[key] = capability
        return capability

    def cached(self, source_id: str, generation: Hashable = 0) -> Optional[SchemaCapability]:
        return self._cache.get((source_id, generation))

    def invalidate(self, source_id: Optional[str] = None) -> None:
        if source_id is None:
            self._cache = {}
        else:
            self._cache = {k: v for k, v in self._cache.items() if k[0] != source_id}
        logger.info("Capability cache cleared for %s", source_id or "all sources")


__all__ = ["CapabilityProbe", "SampleProvider", "SchemaCapability", "UNKNOWN"]
