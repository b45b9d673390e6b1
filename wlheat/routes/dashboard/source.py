"""Data source reload endpoint."""

from __future__ import annotations

from flask import current_app, jsonify

from . import bp, get_datastore, get_filters


@bp.route("/source/reload", methods=["POST"])
def reload_source():
    """Drop the cached feature copy and probe the fresh data again."""
    datastore = get_datastore()
    filters = get_filters()

    datastore.reload()
    filters.probe.invalidate(filters.source_id)
    capability = filters.capability(refresh=True)
    current_app.logger.info("Source %s reloaded (generation %s)", filters.source_id, datastore.generation)

    return jsonify(
        {
            "source": filters.source_id,
            "generation": datastore.generation,
            "capability": capability.to_dict(),
        }
    )
