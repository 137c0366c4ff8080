"""Logging setup for the API process."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(log_level: str = "INFO") -> None:
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))
