from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "EPICURVE_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # Font discovery chatter drowns out ingestion warnings at DEBUG.
    logging.getLogger("matplotlib").setLevel(max(logging.INFO, logging.getLogger().level))
