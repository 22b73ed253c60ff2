"""
logging_config.py — Logging Setup for the Square Checkout Adapter

All adapter modules log through the root logger configured here, so gateway
failures, workflow steps and route errors share one line format that carries
the worker PID (useful when uvicorn runs several workers).

Environment:
    SQUARE_CHECKOUT_LOG_LEVEL  Root level name, INFO when unset
    SQUARE_CHECKOUT_LOG_FILE   Optional path; when set, lines are also appended there
"""

import logging
import os
import sys

LOG_FILE_ENV = "SQUARE_CHECKOUT_LOG_FILE"
LOG_LEVEL_ENV = "SQUARE_CHECKOUT_LOG_LEVEL"


def setup_logging():
    """
    Installs the adapter's handlers and format on the root logger.

    stdout always receives the log lines; the file handler is added only when
    SQUARE_CHECKOUT_LOG_FILE is set. httpx and httpcore are capped at WARNING
    because SquareClient already logs every failed call itself.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    log_file = os.environ.get(LOG_FILE_ENV)
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=os.environ.get(LOG_LEVEL_ENV, "INFO").upper(),
        format=log_format,
        handlers=handlers,
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """Returns the logger for an adapter module; pass the module's __name__."""
    return logging.getLogger(name)
