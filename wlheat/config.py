"""Application configuration objects."""

import os
import sys
from typing import Dict, List, Tuple
from dotenv import load_dotenv
from pathlib import Path

if getattr(sys, "frozen", False):
    load_dotenv(os.path.join(sys._MEIPASS, ".env"))
else:
    load_dotenv()


def _split_fields(value: str) -> Tuple[str, ...]:
    return tuple(part for part in (p.strip() for p in value.split(",")) if part)


class Config:
    """Base configuration for the WL heatmap filter service."""

    # -------------------------
    # Data paths
    # -------------------------
    # DuckDB database file holding the local copy of the feature properties
    DUCKDB_PATH = Path(os.getenv("WLHEAT_DUCKDB_PATH", "data/warehouse.duckdb"))

    # Location of sales CSV exports
    CSV_GLOB = os.getenv("WLHEAT_CSV_GLOB", "data/*.csv")

    # Remote parquet export (optional)
    BUCKET_URL = os.getenv("BUCKET_URL")
    BUCKET_KEY = os.getenv("BUCKET_KEY")

    # -------------------------
    # Tile source
    # -------------------------
    SOURCE_ID = os.getenv("WLHEAT_SOURCE_ID", "wl-src")
    TILESET_ID = os.getenv("WLHEAT_TILESET_ID", "ckunkel.bp872kqi")
    SOURCE_LAYER = os.getenv("WLHEAT_SOURCE_LAYER", "MapBox-42vjbp")

    # -------------------------
    # Feature property names
    # -------------------------
    # Exports disagree on naming, so every field is overridable. The
    # alternates cover headers carrying a UTF-8 byte order mark.
    BRANCH_FIELD = os.getenv("WLHEAT_BRANCH_FIELD", "BranchName")
    GROUP_FIELD = os.getenv("WLHEAT_GROUP_FIELD", "ProductGroupLevel1")
    DATE_TEXT_FIELD = os.getenv("WLHEAT_DATE_TEXT_FIELD", "SaleDate")
    DATE_KEY_FIELD = os.getenv("WLHEAT_DATE_KEY_FIELD", "SaleDateKey")
    DATE_KEY_ALT_FIELDS: Tuple[str, ...] = _split_fields(
        os.getenv("WLHEAT_DATE_KEY_ALT_FIELDS", "\ufeffSaleDateKey")
    )

    # -------------------------
    # Metrics
    # -------------------------
    METRICS: Dict[str, str] = {
        "sales": "Sales",
        "tickets": "Tickets",
    }

    METRIC_FIELDS: Dict[str, str] = {
        "sales": os.getenv("WLHEAT_SALES_FIELD", "TotalSales"),
        "tickets": os.getenv("WLHEAT_TICKETS_FIELD", "TicketCount"),
    }

    # -------------------------
    # Layers
    # -------------------------
    LAYERS: List[Dict[str, str]] = [
        {"id": "wl-heat", "type": "heatmap"},
        {"id": "wl-points", "type": "circle"},
    ]

    HEATMAP_MAX_ZOOM = float(os.getenv("WLHEAT_HEATMAP_MAX_ZOOM", "10"))
    POINTS_MIN_ZOOM = float(os.getenv("WLHEAT_POINTS_MIN_ZOOM", "7.25"))

    # -------------------------
    # Filtering behaviour
    # -------------------------
    FILTER_DEBOUNCE_SECONDS = float(os.getenv("WLHEAT_FILTER_DEBOUNCE_SECONDS", "0.25"))
    PROBE_SAMPLE_SIZE = int(os.getenv("WLHEAT_PROBE_SAMPLE_SIZE", "25"))
    MAX_ENUMERATED_DAYS = int(os.getenv("WLHEAT_MAX_ENUMERATED_DAYS", "370"))


__all__ = ["Config"]
