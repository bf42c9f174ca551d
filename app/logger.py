# app/logger.py
import logging
import os


logging.getLogger("httpx").setLevel(logging.WARNING)

COLORS = {
    "DEBUG": "\033[94m",  # Blue
    "INFO": "\033[92m",  # Green
    "WARNING": "\033[93m",  # Yellow
    "ERROR": "\033[91m",  # Red
    "CRITICAL": "\033[95m",  # Magenta
}
RESET = "\033[0m"


class Formatter(logging.Formatter):
    """[LEVEL] (epoch-ms): message, with the level colored; tracebacks follow."""

    def __init__(self):
        super().__init__("%(colored_level)s (%(epoch_ms)d): %(message)s")

    def format(self, record):
        color = COLORS.get(record.levelname, RESET)
        record.colored_level = f"{color}[{record.levelname}]{RESET}"
        record.epoch_ms = int(record.created * 1000)
        return super().format(record)


handler = logging.StreamHandler()
handler.setFormatter(Formatter())

logger = logging.getLogger("app")
logger.setLevel(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
logger.addHandler(handler)
logger.propagate = False
