"""
Focus Watch Structured Logger
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"

# Per-frame chatter from these drowns out session events
QUIET_LOGGERS = ("urllib3", "sqlalchemy.engine", "uvicorn.access")


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach one stdout handler to the "focuswatch" hierarchy shared by the
    engine ("focuswatch.engine.*") and the service. Safe to call again with a
    new level; the handler is not duplicated.
    """
    logger = logging.getLogger("focuswatch")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_focuswatch", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler._focuswatch = True
        logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
