"""Map style endpoint."""

from __future__ import annotations

from flask import jsonify

from . import bp, get_map_style


@bp.route("/style.json", methods=["GET"])
def style_json():
    """Data layers with the filters and paint last applied to them."""
    return jsonify(get_map_style().to_dict())
