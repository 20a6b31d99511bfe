"""Long-lived local resource sessions."""

from .registry import (
    BrowserSession,
    BrowserState,
    DatabaseSession,
    LogEntry,
    SessionRegistry,
)

__all__ = [
    "BrowserSession",
    "BrowserState",
    "DatabaseSession",
    "LogEntry",
    "SessionRegistry",
]
