"""Registry of long-lived local resource sessions.

The registry owns every database connection (one per connection
identity) and the single process-wide browser session. Instruction
handlers never open resources themselves; they always come through here.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pymongo import AsyncMongoClient

from ..config import SUPPORTED_BROWSERS, BrowserConfig, DatabaseConfig
from ..errors import (
    ResourceConnectionError,
    UnsupportedKindError,
    VendorExecutionError,
)
from ..utils.redaction import redact_identity

logger = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LogEntry:
    """One console message or network request seen by the browser page."""

    kind: str
    timestamp: str = field(default_factory=_utcnow_iso)
    text: Optional[str] = None
    url: Optional[str] = None
    method: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind}
        for key in ("text", "url", "method"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data["timestamp"] = self.timestamp
        return data


@dataclass
class DatabaseSession:
    """An open connection keyed by its connection string."""

    identity: str
    client: Any
    default_catalog: Any

    def catalog(self, name: Optional[str] = None) -> Any:
        """Default catalog, or the one named by an instruction."""
        if name and name != self.default_catalog.name:
            return self.client.get_database(name)
        return self.default_catalog

    async def close(self) -> None:
        await self.client.close()


@dataclass
class BrowserSession:
    """The browser, its one context and its one page."""

    kind: str
    headless: bool
    playwright: Any
    browser: Any
    context: Any
    page: Any
    console_log: List[LogEntry] = field(default_factory=list)
    network_log: List[LogEntry] = field(default_factory=list)

    def install_listeners(self) -> None:
        self.page.on("console", self._on_console)
        self.page.on("request", self._on_request)

    def _on_console(self, message: Any) -> None:
        self.console_log.append(LogEntry(kind=message.type, text=message.text))

    def _on_request(self, request: Any) -> None:
        self.network_log.append(
            LogEntry(kind="request", url=request.url, method=request.method)
        )

    async def close(self) -> None:
        try:
            await self.browser.close()
        finally:
            self.console_log.clear()
            self.network_log.clear()
            await self.playwright.stop()


class BrowserState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CLOSED = "closed"


def _default_playwright_factory():
    from playwright.async_api import async_playwright

    return async_playwright()


class SessionRegistry:
    """Owns and multiplexes database and browser sessions.

    Args:
        database_config: connection defaults (catalog, timeouts)
        browser_config: launch defaults
        mongo_client_factory: builds a driver client from a connection
            string; tests pass a fake
        playwright_factory: returns an un-started Playwright context
            manager; tests pass a fake
    """

    def __init__(
        self,
        database_config: Optional[DatabaseConfig] = None,
        browser_config: Optional[BrowserConfig] = None,
        mongo_client_factory: Optional[Callable[..., Any]] = None,
        playwright_factory: Optional[Callable[[], Any]] = None,
    ):
        self.database_config = database_config or DatabaseConfig()
        self.browser_config = browser_config or BrowserConfig()
        self._mongo_client_factory = mongo_client_factory or AsyncMongoClient
        self._playwright_factory = playwright_factory or _default_playwright_factory

        self._database_sessions: Dict[str, DatabaseSession] = {}
        self._database_locks: Dict[str, asyncio.Lock] = {}

        self._browser_session: Optional[BrowserSession] = None
        self._browser_state = BrowserState.UNINITIALIZED
        self._browser_lock = asyncio.Lock()

    # Database sessions

    @property
    def database_identities(self) -> List[str]:
        return list(self._database_sessions)

    async def get_or_create_database_session(self, identity: str) -> DatabaseSession:
        """Return the session for ``identity``, connecting on first use.

        A failed connect leaves no trace in the registry, so the next
        instruction with the same identity retries from scratch.
        """
        session = self._database_sessions.get(identity)
        if session is not None:
            return session

        lock = self._database_locks.setdefault(identity, asyncio.Lock())
        async with lock:
            # Another task may have connected while we waited
            session = self._database_sessions.get(identity)
            if session is not None:
                return session

            try:
                session = await self._connect_database(identity)
            except ResourceConnectionError:
                self._database_locks.pop(identity, None)
                raise
            self._database_sessions[identity] = session
            return session

    async def _connect_database(self, identity: str) -> DatabaseSession:
        redacted = redact_identity(identity)
        logger.info(f"Connecting to database: {redacted}")

        timeout_ms = self.database_config.timeout_ms
        client = None
        try:
            client = self._mongo_client_factory(
                identity,
                timeoutMS=timeout_ms,
                serverSelectionTimeoutMS=timeout_ms,
            )
            await client.admin.command("ping")
            default_catalog = client.get_default_database(
                default=self.database_config.default_catalog
            )
        except Exception as e:
            if client is not None:
                try:
                    await client.close()
                except Exception as close_error:
                    logger.debug(f"Error closing failed client: {close_error}")
            raise ResourceConnectionError(
                f"Failed to connect to {redacted}: {e}", original_error=e
            ) from e

        logger.info(f"Connected to {redacted} (catalog: {default_catalog.name})")
        return DatabaseSession(
            identity=identity, client=client, default_catalog=default_catalog
        )

    async def close_database_session(self, identity: str) -> bool:
        """Close one database session. Returns False if none was open."""
        session = self._database_sessions.pop(identity, None)
        self._database_locks.pop(identity, None)
        if session is None:
            return False
        await session.close()
        logger.info(f"Closed connection: {redact_identity(identity)}")
        return True

    # Browser session

    @property
    def browser_state(self) -> BrowserState:
        return self._browser_state

    @property
    def browser_session(self) -> Optional[BrowserSession]:
        return self._browser_session

    async def get_or_create_browser_session(
        self, kind: Optional[str] = None, headless: Optional[bool] = None
    ) -> BrowserSession:
        """Return the browser session, launching it on first use.

        Once a browser is running it is returned as-is: a later request
        for a different kind or headless mode does not relaunch.
        """
        if self._browser_session is not None:
            return self._browser_session

        kind = (kind or self.browser_config.default_type).lower()
        if kind not in SUPPORTED_BROWSERS:
            raise UnsupportedKindError(kind, SUPPORTED_BROWSERS)
        if headless is None:
            headless = self.browser_config.headless

        async with self._browser_lock:
            if self._browser_session is not None:
                return self._browser_session

            self._browser_session = await self._launch_browser(kind, headless)
            self._browser_state = BrowserState.ACTIVE
            return self._browser_session

    async def _launch_browser(self, kind: str, headless: bool) -> BrowserSession:
        logger.info(f"Launching {kind} browser (headless: {headless})...")

        playwright = await self._playwright_factory().start()
        try:
            browser_type = getattr(playwright, kind)
            browser = await browser_type.launch(headless=headless)
            context = await browser.new_context()
            page = await context.new_page()
        except Exception as e:
            await playwright.stop()
            raise VendorExecutionError(
                f"Failed to launch {kind} browser: {e}", original_error=e
            ) from e

        session = BrowserSession(
            kind=kind,
            headless=headless,
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
        )
        session.install_listeners()
        logger.info("Browser launched successfully")
        return session

    async def close_browser_session(self) -> Dict[str, Any]:
        """Close the browser if one is running; a no-op otherwise."""
        async with self._browser_lock:
            session = self._browser_session
            if session is None:
                return {"success": True, "message": "Browser was not running"}

            self._browser_session = None
            self._browser_state = BrowserState.CLOSED
            await session.close()
            logger.info("Browser closed")
            return {"success": True, "message": "Browser closed"}

    # Shutdown

    async def close_all(self) -> List[str]:
        """Close every session, continuing past individual failures.

        Returns:
            Descriptions of the closes that failed (empty when all succeeded)
        """
        logger.info("Closing all connections...")
        failures: List[str] = []

        for identity in list(self._database_sessions):
            try:
                await self.close_database_session(identity)
            except Exception as e:
                redacted = redact_identity(identity)
                logger.error(f"Error closing connection {redacted}: {e}")
                failures.append(f"{redacted}: {e}")
        self._database_sessions.clear()

        if self._browser_session is not None:
            try:
                await self.close_browser_session()
            except Exception as e:
                logger.error(f"Error closing browser: {e}")
                failures.append(f"browser: {e}")

        return failures
