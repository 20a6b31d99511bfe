"""
Shared test fixtures for mcp-vendor-proxy tests.

Database and browser handles are ``unittest.mock`` fakes shaped like the
async pymongo and Playwright APIs, so no server or browser is needed.
"""

# Note: default config.yaml/secrets.yaml files are skipped automatically
# by config.py when pytest is detected and no explicit files are set
from typing import Any, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_vendor_proxy.config import (
    SUPPORTED_BROWSERS,
    BrowserConfig,
    DatabaseConfig,
    get_settings,
)
from mcp_vendor_proxy.sessions.registry import SessionRegistry
from mcp_vendor_proxy.vendor.dispatcher import VendorDispatcher

PAGE_METHODS = (
    "goto",
    "go_back",
    "go_forward",
    "reload",
    "title",
    "content",
    "evaluate",
    "screenshot",
    "pdf",
    "set_viewport_size",
    "wait_for_timeout",
)

LOCATOR_METHODS = (
    "click",
    "fill",
    "press_sequentially",
    "press",
    "select_option",
    "hover",
    "drag_to",
    "set_input_files",
    "aria_snapshot",
    "screenshot",
    "all_text_contents",
    "text_content",
    "get_attribute",
    "inner_html",
    "wait_for",
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Every test starts from freshly loaded settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeCursor:
    """Chainable stand-in for a driver cursor."""

    def __init__(self, documents: Optional[List[Any]] = None):
        self.documents = list(documents or [])
        self.sort = MagicMock(return_value=self)
        self.limit = MagicMock(return_value=self)
        self.to_list = AsyncMock(return_value=self.documents)
        self.explain = AsyncMock(return_value={"queryPlanner": {"winningPlan": {}}})


def make_collection(name: str, documents: Optional[List[Any]] = None) -> MagicMock:
    collection = MagicMock(name=f"collection<{name}>")
    collection.name = name
    collection.cursor = FakeCursor(documents)
    collection.find = MagicMock(return_value=collection.cursor)
    collection.aggregate = AsyncMock(return_value=FakeCursor(documents))
    collection.list_indexes = AsyncMock(
        return_value=FakeCursor([{"v": 2, "key": {"_id": 1}, "name": "_id_"}])
    )
    collection.count_documents = AsyncMock(return_value=len(documents or []))
    collection.insert_many = AsyncMock()
    collection.create_index = AsyncMock(return_value="name_1")
    collection.update_many = AsyncMock()
    collection.delete_many = AsyncMock()
    collection.rename = AsyncMock()
    return collection


def make_catalog(name: str) -> MagicMock:
    catalog = MagicMock(name=f"catalog<{name}>")
    catalog.name = name
    catalog.collections = {}

    def get_collection(collection_name: str) -> MagicMock:
        if collection_name not in catalog.collections:
            catalog.collections[collection_name] = make_collection(collection_name)
        return catalog.collections[collection_name]

    catalog.get_collection = MagicMock(side_effect=get_collection)
    catalog.list_collection_names = AsyncMock(return_value=[])
    catalog.command = AsyncMock(return_value={"ok": 1})
    catalog.create_collection = AsyncMock()
    catalog.drop_collection = AsyncMock()
    return catalog


def make_mongo_client(identity: str, default_name: str = "test") -> MagicMock:
    client = MagicMock(name=f"client<{identity}>")
    client.identity = identity
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.catalogs = {default_name: make_catalog(default_name)}

    def get_database(name: str) -> MagicMock:
        if name not in client.catalogs:
            client.catalogs[name] = make_catalog(name)
        return client.catalogs[name]

    client.get_default_database = MagicMock(return_value=client.catalogs[default_name])
    client.get_database = MagicMock(side_effect=get_database)
    client.list_database_names = AsyncMock(return_value=["admin", default_name])
    client.drop_database = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def mongo_factory():
    """Records every client built; each call returns a fresh fake client."""
    return MagicMock(side_effect=lambda identity, **kwargs: make_mongo_client(identity))


def make_page() -> MagicMock:
    page = MagicMock(name="page")
    page.url = "https://example.com/"
    for method in PAGE_METHODS:
        setattr(page, method, AsyncMock())
    page.keyboard.press = AsyncMock()

    locator = MagicMock(name="locator")
    for method in LOCATOR_METHODS:
        setattr(locator, method, AsyncMock())
    page.locator = MagicMock(return_value=locator)
    return page


class FakePlaywright:
    """Callable stand-in for ``async_playwright``.

    Every call returns a new un-started manager; ``starts`` counts them.
    """

    def __init__(self):
        self.page = make_page()
        self.context = MagicMock(name="context")
        self.context.new_page = AsyncMock(return_value=self.page)
        self.browser = MagicMock(name="browser")
        self.browser.new_context = AsyncMock(return_value=self.context)
        self.browser.close = AsyncMock()
        self.driver = MagicMock(name="playwright")
        self.driver.stop = AsyncMock()
        for kind in SUPPORTED_BROWSERS:
            getattr(self.driver, kind).launch = AsyncMock(return_value=self.browser)
        self.starts = 0

    def __call__(self):
        self.starts += 1
        manager = MagicMock(name="playwright_manager")
        manager.start = AsyncMock(return_value=self.driver)
        return manager

    @property
    def locator(self) -> MagicMock:
        return self.page.locator.return_value


@pytest.fixture
def fake_playwright():
    return FakePlaywright()


@pytest.fixture
def database_config():
    return DatabaseConfig()


@pytest.fixture
def browser_config():
    return BrowserConfig(guard_grace_seconds=1.0)


@pytest.fixture
def registry(database_config, browser_config, mongo_factory, fake_playwright):
    return SessionRegistry(
        database_config,
        browser_config,
        mongo_client_factory=mongo_factory,
        playwright_factory=fake_playwright,
    )


@pytest.fixture
def dispatcher(registry):
    return VendorDispatcher(registry)


@pytest.fixture
def mongo_client_builder():
    """The fake-client builder, for tests that assemble their own factory."""
    return make_mongo_client
