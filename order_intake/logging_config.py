"""
logging_config.py — Logging for the Order Intake Service

One configuration for every module: INFO and above, written to stdout and to
ORDER_INTAKE_LOG_FILE. Log lines carry their context as a prefix, e.g. "[Order: <id>]".
"""

import logging
import os
import sys

LOG_FILE = os.environ.get("ORDER_INTAKE_LOG_FILE", "order_intake.log")


def setup_logging():
    """Installs the file and stdout handlers and quiets the catalog HTTP client and MongoDB driver."""
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

    logging.basicConfig(
        level=logging.INFO,
        format=log_format,
        handlers=[
            logging.FileHandler(LOG_FILE),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Third-party loggers: warnings only
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def get_logger(name):
    return logging.getLogger(name)
