"""Metrics service utilities."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from wlheat.utils.filter_state import Metric
from wlheat.utils.predicates import Expression, safe_number, safe_number_expression

# circle-radius stops over ln(1 + value)
CIRCLE_RADIUS_STOPS: Tuple[Tuple[float, float], ...] = ((0, 2), (3, 4), (6, 7), (9, 11))


@dataclass(frozen=True)
class MetricExpression:
    """``ln(1 + max(0, value))`` where value is read through ``safe_number``."""

    fields: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))

    def to_expression(self) -> Expression:
        return ["ln", ["+", 1, ["max", 0, safe_number_expression(self.fields)]]]

    def evaluate(self, record: Mapping[str, Any]) -> float:
        return math.log1p(max(0.0, safe_number(record, self.fields)))

    def evaluate_frame(self, df: pd.DataFrame) -> pd.Series:
        """Vectorised :meth:`evaluate` over the rows of ``df``."""
        values = pd.Series(np.nan, index=df.index, dtype="float64")
        for name in self.fields:
            if name in df.columns:
                coerced = pd.to_numeric(df[name], errors="coerce").astype("float64")
                coerced = coerced.where(np.isfinite(coerced))
                values = values.fillna(coerced)
        return pd.Series(np.log1p(values.fillna(0.0).clip(lower=0.0)), index=df.index)


def metric_paint_properties(layer_type: str, metric: MetricExpression) -> Dict[str, Expression]:
    """Paint properties that depend on the chosen metric, by layer type."""
    weight = metric.to_expression()
    if layer_type == "heatmap":
        return {"heatmap-weight": weight}
    if layer_type == "circle":
        stops: List[float] = []
        for value, radius in CIRCLE_RADIUS_STOPS:
            stops.extend([value, radius])
        return {"circle-radius": ["interpolate", ["linear"], weight, *stops]}
    return {}


class Metrics:
    """Encapsulate metric labels, property names and expressions."""

    def __init__(self, mapping: Dict[str, str], fields: Dict[str, Union[str, Iterable[str]]]):
        self.mapping = dict(mapping)
        self.fields: Dict[str, Tuple[str, ...]] = {
            key: (value,) if isinstance(value, str) else tuple(value)
            for key, value in fields.items()
        }

    def label(self, key: Optional[Union[str, Metric]]) -> str:
        if not key:
            return ""
        if isinstance(key, Metric):
            key = key.value
        return self.mapping.get(key, key)

    def field_names(self, metric: Metric) -> Tuple[str, ...]:
        return self.fields.get(metric.value, (metric.value,))

    def expression(self, metric: Metric) -> MetricExpression:
        return MetricExpression(self.field_names(metric))

    def available(self, columns: Iterable[str]) -> List[Tuple[str, str]]:
        cols = set(columns)
        return [
            (k, v)
            for k, v in self.mapping.items()
            if any(name in cols for name in self.fields.get(k, (k,)))
        ]


__all__ = ["CIRCLE_RADIUS_STOPS", "MetricExpression", "Metrics", "metric_paint_properties"]
