"""Filter endpoints for dashboard."""

from __future__ import annotations

from flask import jsonify, request

from . import bp, get_datastore, get_filters, get_metrics, get_scheduler
from .helpers import build_state
from wlheat.utils.filter_state import FilterState


def _truthy(value) -> bool:
    return str(value or "").lower() in ("1", "true", "yes")


@bp.route("/filters/compile", methods=["POST"])
def compile_filters():
    """Compiled layer filter and metric paint for the posted selections."""
    payload = request.get_json(silent=True) or {}
    state = build_state(payload)

    filters = get_filters()
    metrics = get_metrics()
    report = filters.preview(state)

    out = report.to_dict()
    out["metric_label"] = metrics.label(state.metric)
    out["paint"] = filters.paint(report.metric)
    return jsonify(out)


@bp.route("/filters/apply", methods=["POST"])
def apply_filters():
    payload = request.get_json(silent=True) or {}
    state = build_state(payload)
    scheduler = get_scheduler()

    if not _truthy(request.args.get("immediate")):
        scheduler.submit(state)
        return jsonify({"state": scheduler.state.value}), 202

    report = scheduler.apply_now(state)
    if report is None:
        return jsonify({"state": scheduler.state.value, "ok": False}), 500
    return jsonify(report.to_dict())


@bp.route("/filters/clear", methods=["POST"])
def clear_filters():
    scheduler = get_scheduler()
    report = scheduler.apply_now(FilterState.default())
    if report is None:
        return jsonify({"state": scheduler.state.value, "ok": False}), 500
    return jsonify(report.to_dict())


@bp.route("/filters/summary", methods=["POST"])
def filter_summary():
    """Matched row count and metric total over the local feature copy."""
    payload = request.get_json(silent=True) or {}
    state = build_state(payload)

    metrics = get_metrics()
    datastore = get_datastore()
    report = get_filters().preview(state)
    summary = datastore.summarize(report.predicate, metrics.field_names(state.metric))
    # summed heat weight, as the heatmap layer sees it
    weight = report.metric.evaluate_frame(datastore.select(report.predicate)).sum()

    return jsonify(
        {
            "rows": summary["rows"],
            "total": summary["total"],
            "weight": float(weight),
            "metric": state.metric.value,
            "metric_label": metrics.label(state.metric),
            "metrics": [
                {"key": key, "label": label}
                for key, label in metrics.available(datastore.columns())
            ],
            "diagnostics": [d.to_dict() for d in report.diagnostics],
        }
    )
