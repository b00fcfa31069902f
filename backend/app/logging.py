import logging
import sys
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that log every outbound request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Stdout handler on the root logger, installed once; later calls only change the level."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def kv(**fields: object) -> str:
    """`a=1 b=x`, skipping None values."""
    return " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "food_sorted")
