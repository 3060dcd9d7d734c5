# secureweb/logging_config.py

"""
Configures structured JSON logging for the SecureWeb service.

One JSON object per line on stdout, with `timestamp`, `level`, `logger` and
`service` keys plus whatever `extra` fields the caller attached (request IDs,
denial reasons, ...). Uses the `python-json-logger` package.

Uvicorn's own access log is silenced: `LoggingMiddleware` already records
every request, and it logs route templates rather than raw URLs.

💡 Control verbosity via the LOG_LEVEL environment variable (e.g., DEBUG, INFO, WARNING).
"""

import logging
import sys
from pythonjsonlogger.json import JsonFormatter


def configure_logging(level: str = "INFO") -> None:
    """
    Replace any existing root handlers with a single JSON handler on stdout.

    Args:
        level (str): Log level (e.g., "DEBUG", "INFO", "ERROR").
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
            static_fields={"service": "secureweb"},
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    logging.getLogger("uvicorn.access").disabled = True
