"""Logging setup for the proxy process.

stdout carries the MCP JSON-RPC stream, so diagnostics only ever go to
stderr (and optionally a rotating file).
"""

import logging
import logging.handlers
import sys
import uuid
from pathlib import Path
from typing import Optional

from ..config import get_settings
from ..utils.logging_filter import RedactionFilter

APP_LOGGER = "mcp_vendor_proxy"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_instance_id: Optional[str] = None


def generate_instance_id() -> str:
    """Generate an instance ID based on runtime context."""
    project = Path.cwd().name
    session = str(uuid.uuid4())[:8]
    return f"{project}_{session}"


def get_instance_id() -> Optional[str]:
    return _instance_id


def setup_logging() -> logging.Logger:
    """Configure the application logger from settings."""
    global _instance_id

    settings = get_settings()

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(settings.logging.level)
    app_logger.propagate = False

    if app_logger.hasHandlers():
        app_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)
    redaction = RedactionFilter()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.addFilter(redaction)
    app_logger.addHandler(stderr_handler)

    if settings.logging.file:
        try:
            log_path = Path(settings.logging.file).expanduser()
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5 * 1024 * 1024, backupCount=3
            )
            file_handler.setFormatter(formatter)
            file_handler.addFilter(redaction)
            app_logger.addHandler(file_handler)
        except OSError as e:
            # Don't block startup on an unwritable log file
            app_logger.warning(f"Could not open log file {settings.logging.file}: {e}")

    _instance_id = generate_instance_id()
    app_logger.debug(f"Logging initialized for instance {_instance_id}")
    return app_logger


def shutdown_logging():
    """Flush and detach every handler of the application logger."""
    app_logger = logging.getLogger(APP_LOGGER)
    for handler in list(app_logger.handlers):
        try:
            handler.flush()
            handler.close()
        finally:
            app_logger.removeHandler(handler)
