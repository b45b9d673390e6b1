"""Probe, compile and apply: one filter cycle for the map layers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Sequence, Tuple

from wlheat.services.capability import CapabilityProbe, SampleProvider, SchemaCapability
from wlheat.services.compiler import Diagnostic, ExpressionCompiler
from wlheat.services.layers import LayerHandle, LayerSynchronizer, SyncReport
from wlheat.services.metrics import MetricExpression, Metrics, metric_paint_properties
from wlheat.utils.filter_state import FilterState
from wlheat.utils.predicates import All

logger = logging.getLogger("wlheat.filters")


@dataclass(frozen=True)
class ApplyReport:
    state: FilterState
    predicate: All
    metric: MetricExpression
    capability: SchemaCapability
    diagnostics: Tuple[Diagnostic, ...] = ()
    sync: Optional[SyncReport] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "filter": self.predicate.to_expression(),
            "metric": self.state.metric.value,
            "capability": self.capability.to_dict(),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
        if self.sync is not None:
            out["layers"] = self.sync.to_dict()
        return out


class FilterService:
    """Tie the capability probe, the compiler and the layer synchronizer together."""

    def __init__(
        self,
        compiler: ExpressionCompiler,
        probe: CapabilityProbe,
        metrics: Metrics,
        sample_provider: SampleProvider,
        source_id: str,
        layers: Sequence[LayerHandle] = (),
        synchronizer: Optional[LayerSynchronizer] = None,
        generation: Callable[[], Hashable] = lambda: 0,
    ):
        self.compiler = compiler
        self.probe = probe
        self.metrics = metrics
        self.sample_provider = sample_provider
        self.source_id = source_id
        self.layers = list(layers)
        self.synchronizer = synchronizer or LayerSynchronizer()
        self._generation = generation

    def capability(self, refresh: bool = False) -> SchemaCapability:
        return self.probe.get(
            self.sample_provider,
            self.source_id,
            generation=self._generation(),
            refresh=refresh,
        )

    def preview(self, state: FilterState) -> ApplyReport:
        """Compile ``state`` without touching any layer."""
        capability = self.capability()
        compiled = self.compiler.compile_with_diagnostics(state, capability)
        return ApplyReport(
            state=state,
            predicate=compiled.predicate,
            metric=self.metrics.expression(state.metric),
            capability=capability,
            diagnostics=compiled.diagnostics,
        )

    def apply(self, state: FilterState) -> ApplyReport:
        report = self.preview(state)
        sync = self.synchronizer.apply(report.predicate, report.metric, self.layers)
        logger.info(
            "Applied filters • Metric: %s • %d clause(s)",
            self.metrics.label(state.metric),
            len(report.predicate.children),
        )
        return ApplyReport(
            state=report.state,
            predicate=report.predicate,
            metric=report.metric,
            capability=report.capability,
            diagnostics=report.diagnostics,
            sync=sync,
        )

    def paint(self, metric: MetricExpression) -> Dict[str, Dict[str, Any]]:
        """Metric-derived paint properties for each known layer."""
        return {
            handle.layer_id: metric_paint_properties(handle.layer_type, metric)
            for handle in self.layers
        }


__all__ = ["ApplyReport", "FilterService"]
