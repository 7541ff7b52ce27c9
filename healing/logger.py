import logging
import sys
import os
import structlog
from typing import Any

_configured = False

def configure_logger(force: bool = False):
    """
    Configures structlog to output either JSON or pretty console logs
    based on the LOG_FORMAT environment variable.
    """
    global _configured
    if _configured and not force:
        return

    json_logs = os.getenv("LOG_FORMAT", "console").lower() == "json"
    level = getattr(logging, os.getenv("HEALING_LOG_LEVEL", "WARNING").upper(), logging.WARNING)

    # 1. Standard Python Logging Configuration
    # - Console: WARNING by default (aborts, failed recoveries, handler errors)
    # - File: only when HEALING_LOG_FILE is set, full DEBUG trace of decisions
    root_log = logging.getLogger("healing")
    root_log.setLevel(logging.DEBUG)
    root_log.handlers.clear()

    formatter = logging.Formatter('%(message)s')

    log_file = os.getenv("HEALING_LOG_FILE")
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_log.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_log.addHandler(console_handler)

    # 2. Structlog Configuration
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True

def get_logger(name: str = None) -> Any:
    return structlog.get_logger(name)
