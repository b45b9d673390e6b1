"""Healthcheck endpoint."""

from __future__ import annotations

from flask import current_app, jsonify

from . import bp, get_datastore, get_scheduler


@bp.route("/health", methods=["GET"])
def health():
    datastore = get_datastore()
    try:
        summary = datastore.compute_summary()
        return (
            jsonify(
                {
                    "ok": True,
                    "rows": summary["rows"],
                    "cols": summary["cols"],
                    "scheduler": get_scheduler().state.value,
                }
            ),
            200,
        )
    except Exception as exc:  # pragma: no cover
        current_app.logger.exception("Healthcheck failed")
        return jsonify({"ok": False, "error": str(exc)}), 500
