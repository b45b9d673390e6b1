"""Application factory for the WL heatmap filter service."""

from __future__ import annotations

import logging

from typing import Any, Mapping, Optional, Union

from flask import Flask

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("wlheat")

from .config import Config
from .routes.dashboard import bp as dashboard_bp
from .services.capability import CapabilityProbe
from .services.compiler import ExpressionCompiler, FieldMapping
from .services.datastore import DataStore
from .services.filter_service import FilterService
from .services.layers import LayerSynchronizer, MapStyle, handles_for
from .services.metrics import Metrics
from .services.scheduler import ChangeScheduler
from .utils.filter_state import Metric
from .utils.predicates import All


def create_app(
    config_object: Optional[Union[str, Mapping[str, Any], type]] = None,
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    app.config.from_object(Config)
    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object is not None:
        app.config.from_object(config_object)

    metrics = Metrics(app.config["METRICS"], app.config["METRIC_FIELDS"])
    datastore = DataStore(app.config)
    style = MapStyle.from_config(app.config)
    probe = CapabilityProbe(
        app.config["DATE_KEY_FIELD"],
        app.config["DATE_KEY_ALT_FIELDS"],
        sample_size=app.config["PROBE_SAMPLE_SIZE"],
    )
    compiler = ExpressionCompiler(
        FieldMapping.from_config(app.config),
        max_days=app.config["MAX_ENUMERATED_DAYS"],
    )
    sample_size = app.config["PROBE_SAMPLE_SIZE"]
    filters = FilterService(
        compiler,
        probe,
        metrics,
        sample_provider=lambda source_id: datastore.sample_properties(source_id, sample_size),
        source_id=app.config["SOURCE_ID"],
        layers=handles_for(style, app.config["LAYERS"]),
        synchronizer=LayerSynchronizer(),
        generation=lambda: datastore.generation,
    )
    # start state: no constraint, sales metric
    filters.synchronizer.apply(All(), metrics.expression(Metric.SALES_AMOUNT), filters.layers)
    scheduler = ChangeScheduler(filters.apply, delay=app.config["FILTER_DEBOUNCE_SECONDS"])

    app.extensions["metrics"] = metrics
    app.extensions["datastore"] = datastore
    app.extensions["map_style"] = style
    app.extensions["filters"] = filters
    app.extensions["scheduler"] = scheduler

    app.register_blueprint(dashboard_bp)

    logger.info(
        "Filter service ready • source %s • layers %s",
        app.config["SOURCE_ID"],
        ", ".join(style.layer_ids()),
    )
    return app


__all__ = ["create_app"]
