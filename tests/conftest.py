from typing import Any, Callable, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from cosense_mcp_server.config import Settings
from cosense_mcp_server.cosense.browser import LaunchOptions, PortAllocator
from cosense_mcp_server.cosense.client import CosenseClient


# Browser fakes
class FakePage:
    """Page whose hostname() walks through a script of values or exceptions."""

    def __init__(self, url: str, hostnames: Optional[List[Any]] = None):
        self.url = url
        self._hostnames = list(hostnames or ["scrapbox.io"])
        self.closed = False

    async def hostname(self) -> str:
        item = self._hostnames.pop(0) if len(self._hostnames) > 1 else self._hostnames[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def evaluate(self, expression, arg=None):
        return None

    async def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, options: LaunchOptions, cookies, hostnames):
        self.options = options
        self._cookies = cookies
        self._hostnames = hostnames
        self.pages: List[FakePage] = []
        self.closed = False

    async def new_page(self, url, viewport=None):
        page = FakePage(url, self._hostnames)
        page.viewport = viewport
        self.pages.append(page)
        return page

    async def cookies(self):
        return list(self._cookies)

    async def close(self):
        self.closed = True


class FakeLauncher:
    def __init__(self, cookies=None, hostnames=None):
        self.cookies = cookies if cookies is not None else [
            {"name": "connect.sid", "value": "s%3Aabc", "domain": "scrapbox.io"},
        ]
        self.hostnames = hostnames
        self.sessions: List[FakeSession] = []

    async def launch(self, options: LaunchOptions) -> FakeSession:
        session = FakeSession(options, self.cookies, self.hostnames)
        self.sessions.append(session)
        return session


class FakeEditor:
    """RemoteEditor double recording the calls made by the client."""

    def __init__(self, available=True, fail_with: Optional[BaseException] = None,
                 fail_on: str = "edit"):
        self.available = available
        self.fail_with = fail_with
        self.fail_on = fail_on
        self.calls: List[Any] = []
        self.page = None
        self.closed = False

    def __call__(self, page):
        self.page = page
        return self

    async def is_available(self):
        return self.available

    async def insert_line(self, text, index):
        self.calls.append(("insert", text, index))
        self._maybe_fail("edit")

    async def update_line(self, text, index):
        self.calls.append(("update", text, index))
        self._maybe_fail("edit")

    async def wait_for_save(self):
        self.calls.append("wait")
        self._maybe_fail("save")

    async def close(self):
        self.closed = True

    def _maybe_fail(self, stage):
        if self.fail_with is not None and self.fail_on == stage:
            raise self.fail_with


# Fixtures
@pytest.fixture
def cosense_settings(tmp_path):
    return Settings(
        config_dir=tmp_path / "config",
        auth_poll_attempts=5,
        auth_poll_interval=0,
    )


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def editor():
    return FakeEditor()


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def make_client(cosense_settings, launcher, editor, requests_seen):
    """
    Build a CosenseClient wired to fakes. ``handler`` receives each
    httpx.Request and returns an httpx.Response.
    """

    def _make(handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
              **kwargs) -> CosenseClient:
        def _record(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            if handler is None:
                return httpx.Response(200, json={})
            return handler(request)

        kwargs.setdefault("launcher", launcher)
        kwargs.setdefault("editor_factory", editor)
        kwargs.setdefault("ports", PortAllocator(9022))
        kwargs.setdefault("sleep", AsyncMock())
        return CosenseClient(
            cosense_settings,
            transport=httpx.MockTransport(_record),
            **kwargs,
        )

    return _make


@pytest.fixture
def mock_client():
    mock = AsyncMock(spec=CosenseClient)
    return mock
