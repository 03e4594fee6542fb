"""Singleton logging configuration.

setup_logging() configures the root logger once per process and quiets
noisy library loggers. Idempotent (guarded by a module-level flag).
"""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Library loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = (
    "asyncio",
    "concurrent.futures",
)

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger. Second call is a no-op."""
    global _configured  # noqa: PLW0603
    if _configured:
        return
    _configured = True

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)


def set_level(level: str) -> None:
    """Change the traceaudit logger level after setup (e.g. --verbose)."""
    logging.getLogger("traceaudit").setLevel(
        getattr(logging, level.upper())
    )
