# app/utils/logger.py
"""
Logging setup shared by every module.
Console + rotating logs/patio.log for everything; the audit recorder and the
revert engine additionally write to logs/patio-audit.log at AUDIT_LOG_LEVEL,
so operators can follow reverts without the request noise.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from app.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
AUDIT_LOG_LEVEL = settings.AUDIT_LOG_LEVEL.upper()
LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
os.makedirs(LOG_DIR, exist_ok=True)

AUDIT_LOGGERS = (
    "app.services.audit_service",
    "app.services.revert_service",
)

_configured = False


def _rotating_handler(filename: str, level: str, fmt: logging.Formatter) -> RotatingFileHandler:
    # 10 × 5MB per file; the audit trail of record lives in the DB
    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, filename),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)
    root.addHandler(_rotating_handler("patio.log", LOG_LEVEL, fmt))

    audit_file = _rotating_handler("patio-audit.log", AUDIT_LOG_LEVEL, fmt)
    for name in AUDIT_LOGGERS:
        audit_logger = logging.getLogger(name)
        audit_logger.setLevel(AUDIT_LOG_LEVEL)
        audit_logger.addHandler(audit_file)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)
