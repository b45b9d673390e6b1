"""Dashboard blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("dashboard", __name__)


def get_metrics():
    from flask import current_app

    return current_app.extensions["metrics"]


def get_datastore():
    from flask import current_app

    return current_app.extensions["datastore"]


def get_filters():
    from flask import current_app

    return current_app.extensions["filters"]


def get_scheduler():
    from flask import current_app

    return current_app.extensions["scheduler"]


def get_map_style():
    from flask import current_app

    return current_app.extensions["map_style"]


from . import filters, health, source, style  # noqa: E402,F401

__all__ = ["bp", "get_metrics", "get_datastore", "get_filters", "get_scheduler", "get_map_style"]
