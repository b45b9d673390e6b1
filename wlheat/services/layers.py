"""Push compiled filters and metric paint properties to the map layers."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from wlheat.services.metrics import MetricExpression, metric_paint_properties
from wlheat.utils.predicates import Expression, Predicate

logger = logging.getLogger("wlheat.layers")


class LayerNotFoundError(LookupError):
    """The renderer has no layer with the requested id."""


class LayerHandle:
    """One rendered data layer, as seen by the synchronizer."""

    layer_id: str = ""
    layer_type: str = ""

    def set_filter(self, expression: Expression) -> None:
        raise NotImplementedError

    def set_paint_property(self, name: str, value: Expression) -> None:
        raise NotImplementedError


class MapStyle:
    """In-memory Mapbox GL style document holding the data layers.

    The map page loads it from ``/style.json``; filters and paint properties
    are written into it by :class:`StyleLayerHandle`.
    """

    def __init__(self, document: Optional[Mapping[str, Any]] = None):
        self._doc: Dict[str, Any] = copy.deepcopy(dict(document or {}))
        self._doc.setdefault("version", 8)
        self._doc.setdefault("sources", {})
        self._doc.setdefault("layers", [])
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "MapStyle":
        source_id = config.get("SOURCE_ID", "wl-src")
        layers: List[Dict[str, Any]] = []
        for spec in config.get("LAYERS", []):
            layer: Dict[str, Any] = {
                "id": spec["id"],
                "type": spec["type"],
                "source": source_id,
                "source-layer": config.get("SOURCE_LAYER", ""),
                "filter": ["all"],
                "paint": {},
            }
            if spec["type"] == "heatmap":
                layer["maxzoom"] = config.get("HEATMAP_MAX_ZOOM", 10)
            elif spec["type"] == "circle":
                layer["minzoom"] = config.get("POINTS_MIN_ZOOM", 7.25)
            layers.append(layer)
        return cls(
            {
                "version": 8,
                "sources": {
                    source_id: {
                        "type": "vector",
                        "url": f"mapbox://{config.get('TILESET_ID', '')}",
                    }
                },
                "layers": layers,
            }
        )

    def _find(self, layer_id: str) -> Dict[str, Any]:
        for layer in self._doc["layers"]:
            if layer.get("id") == layer_id:
                return layer
        raise LayerNotFoundError(layer_id)

    def has_layer(self, layer_id: str) -> bool:
        with self._lock:
            return any(layer.get("id") == layer_id for layer in self._doc["layers"])

    def layer(self, layer_id: str) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._find(layer_id))

    def layer_ids(self) -> List[str]:
        with self._lock:
            return [layer.get("id") for layer in self._doc["layers"]]

    def remove_layer(self, layer_id: str) -> None:
        with self._lock:
            self._doc["layers"] = [
                layer for layer in self._doc["layers"] if layer.get("id") != layer_id
            ]

    def set_filter(self, layer_id: str, expression: Expression) -> None:
        with self._lock:
            self._find(layer_id)["filter"] = copy.deepcopy(expression)

    def set_paint_property(self, layer_id: str, name: str, value: Expression) -> None:
        with self._lock:
            self._find(layer_id).setdefault("paint", {})[name] = copy.deepcopy(value)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._doc)


class StyleLayerHandle(LayerHandle):
    def __init__(self, style: MapStyle, layer_id: str, layer_type: str):
        self.style = style
        self.layer_id = layer_id
        self.layer_type = layer_type

    def set_filter(self, expression: Expression) -> None:
        self.style.set_filter(self.layer_id, expression)

    def set_paint_property(self, name: str, value: Expression) -> None:
        self.style.set_paint_property(self.layer_id, name, value)

    def __repr__(self) -> str:
        return f"StyleLayerHandle({self.layer_id!r}, {self.layer_type!r})"


def handles_for(style: MapStyle, layer_specs: Iterable[Mapping[str, str]]) -> List[StyleLayerHandle]:
    return [StyleLayerHandle(style, spec["id"], spec["type"]) for spec in layer_specs]


@dataclass(frozen=True)
class SyncReport:
    applied: Tuple[str, ...] = ()
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return bool(self.applied) or not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "applied": list(self.applied), "failed": dict(self.failed)}


class LayerSynchronizer:
    """Apply one predicate (and metric paint) to every dependent layer.

    Layers are handled independently: a failure on one is logged and
    recorded, and the remaining layers are still updated.
    """

    def apply(
        self,
        predicate: Predicate,
        metric: Optional[MetricExpression],
        layers: Sequence[LayerHandle],
    ) -> SyncReport:
        expression = predicate.to_expression()
        applied: List[str] = []
        failed: Dict[str, str] = {}

        for handle in layers:
            layer_id = getattr(handle, "layer_id", repr(handle))
            try:
                handle.set_filter(expression)
                if metric is not None:
                    for name, value in metric_paint_properties(handle.layer_type, metric).items():
                        handle.set_paint_property(name, value)
            except Exception as exc:
                logger.warning("Layer %s not updated (non-fatal): %r", layer_id, exc)
                failed[layer_id] = str(exc) or exc.__class__.__name__
                continue
            applied.append(layer_id)

        logger.info("Applied filter to %d/%d layer(s)", len(applied), len(layers))
        return SyncReport(tuple(applied), failed)


__all__ = [
    "LayerHandle",
    "LayerNotFoundError",
    "LayerSynchronizer",
    "MapStyle",
    "StyleLayerHandle",
    "SyncReport",
    "handles_for",
]
