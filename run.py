"""Development server: warm the feature store, then serve the filter API."""

import logging
import os

from wlheat.app import create_app

logger = logging.getLogger("wlheat")

app = create_app()


def warm_up(flask_app) -> None:
    """Load the features and probe the date key before the first request."""
    datastore = flask_app.extensions["datastore"]
    filters = flask_app.extensions["filters"]
    summary = datastore.compute_summary()
    capability = filters.capability()
    logger.info(
        "Warm start • %d row(s) • numeric date key %s",
        summary["rows"],
        "present" if capability.has_numeric_date_key else "absent",
    )


if __name__ == "__main__":
    warm_up(app)
    app.run(
        host=os.getenv("WLHEAT_HOST", "127.0.0.1"),
        port=int(os.getenv("WLHEAT_PORT", "5000")),
    )
