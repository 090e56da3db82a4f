"""
Cosense API Client

This module provides the cookie-authenticated client for one Cosense origin.

Reads go through plain HTTP (httpx) with the session cookies attached.
Writes drive the live page editor through a headless browser, since the
public API has no line-level write endpoint.

Design Goals
------------
- One lazily created browser session and one cookie jar per client
- A distinguished NotLoggedInError whenever the API answers 401
- Line edits report failures as ActionResult instead of raising
- Browser pages opened for edits are always closed
- Fully dependency-injectable (browser launcher, editor, HTTP transport)
"""

from __future__ import annotations

import asyncio
import atexit
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Awaitable

import httpx

from ..config import Settings, settings as default_settings
from ..core.errors import (
    CosenseRequestError,
    EditorScriptError,
    NotLoggedInError,
    SessionClosedError,
)
from .browser import (
    BrowserLauncher,
    BrowserPage,
    BrowserSession,
    LaunchOptions,
    PageEditor,
    PlaywrightLauncher,
    PortAllocator,
    RemoteEditor,
)
from .cookies import CookieJar
from .models import ActionResult, Page, PageList, Project
from .routes import Routes

logger = logging.getLogger("mcp.cosense.client")

EditorFactory = Callable[[BrowserPage], RemoteEditor]
SleepFn = Callable[[float], Awaitable[None]]

EDITOR_NOT_FOUND = "Cosense editor not found"
AUTH_TIMEOUT = "Authentication timed out"


# ---------------------------------------------------------------------
# Session state (module-internal)
# ---------------------------------------------------------------------

@dataclass
class _SessionState:
    browser: Optional[BrowserSession] = None
    cookies: Optional[CookieJar] = None
    exit_hook_registered: bool = False


# ---------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------

class CosenseClient:
    """
    Cookie-authenticated Cosense client.

    Parameters
    ----------
    cfg : Settings
        Configuration; defaults to the process-wide settings.

    debugging_port : Optional[int]
        Explicit remote-debugging port for the headless browser. When omitted
        a port is taken from ``ports``.

    ports : Optional[PortAllocator]
        Shared allocator so several clients in one process get distinct ports.

    launcher, editor_factory, transport, sleep
        Test seams for the browser, the in-page editor, httpx and the
        authentication poll delay.
    """

    def __init__(
        self,
        cfg: Optional[Settings] = None,
        *,
        debugging_port: Optional[int] = None,
        ports: Optional[PortAllocator] = None,
        launcher: Optional[BrowserLauncher] = None,
        editor_factory: EditorFactory = PageEditor,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.settings = cfg or default_settings
        self.routes = Routes(self.settings.origin)

        if debugging_port is None:
            allocator = ports or PortAllocator(self.settings.debugging_port_start)
            debugging_port = allocator.allocate()

        self.launch_options = LaunchOptions(
            user_data_dir=self.settings.resolved_user_data_dir(),
            headless=self.settings.headless,
            debugging_port=debugging_port,
            channel=self.settings.browser_channel,
            executable_path=self.settings.browser_executable_path,
        )

        self._launcher = launcher or PlaywrightLauncher()
        self._editor_factory = editor_factory
        self._transport = transport
        self._sleep = sleep
        self._state = _SessionState()

    async def __aenter__(self) -> "CosenseClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.cleanup()

    # ------------------------------------------------------------------
    # Browser lifecycle
    # ------------------------------------------------------------------

    @property
    def has_browser(self) -> bool:
        return self._state.browser is not None

    async def cleanup(self) -> None:
        """Close and forget the headless browser, if any. Idempotent."""
        if self._state.exit_hook_registered:
            atexit.unregister(self._cleanup_at_exit)
            self._state.exit_hook_registered = False
        browser = self._state.browser
        if browser is None:
            return
        self._state.browser = None
        await browser.close()
        logger.info("Closed headless browser")

    async def _get_browser(self) -> BrowserSession:
        if self._state.browser is not None:
            return self._state.browser

        self._state.browser = await self._launcher.launch(self.launch_options)
        if not self._state.exit_hook_registered:
            atexit.register(self._cleanup_at_exit)
            self._state.exit_hook_registered = True
        return self._state.browser

    def _cleanup_at_exit(self) -> None:
        if self._state.browser is None:
            return
        try:
            asyncio.run(self.cleanup())
        except Exception:
            # Interpreter shutdown; the browser may already be gone.
            logger.debug("Browser cleanup at exit failed", exc_info=True)

    async def visit(self, url: str) -> BrowserPage:
        browser = await self._get_browser()
        viewport = (self.settings.viewport_width, self.settings.viewport_height)
        return await browser.new_page(url, viewport)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self) -> ActionResult:
        """
        Run an interactive login in a visible browser.

        Polls the page location until it reaches the Cosense domain, then
        captures that domain's cookies. Replaces any headless session, since
        both browsers share one profile directory.
        """
        await self.cleanup()

        options = LaunchOptions(
            user_data_dir=self.launch_options.user_data_dir,
            headless=False,
            channel=self.launch_options.channel,
            executable_path=self.launch_options.executable_path,
        )
        browser = await self._launcher.launch(options)
        domain = self.settings.auth_domain

        try:
            page = await browser.new_page(self.routes.login())
            logger.info("Waiting for interactive login on %s", domain)

            for _ in range(self.settings.auth_poll_attempts):
                await self._sleep(self.settings.auth_poll_interval)
                try:
                    hostname = await page.hostname()
                except SessionClosedError:
                    continue
                if domain in hostname:
                    await self._fetch_cookies(browser)
                    logger.info("Authenticated with %s", domain)
                    return ActionResult(success=True)

            logger.warning(
                "Authentication timed out after %d attempts",
                self.settings.auth_poll_attempts,
            )
            return ActionResult(success=False, message=AUTH_TIMEOUT)
        finally:
            await browser.close()

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    async def _fetch_cookies(self, browser: BrowserSession) -> CookieJar:
        jar = CookieJar.from_browser_cookies(
            await browser.cookies(),
            self.settings.auth_domain,
        )
        self._state.cookies = jar
        logger.debug("Captured %d cookies from browser", len(jar))
        return jar

    async def _get_cookies(self) -> CookieJar:
        if self._state.cookies is not None:
            return self._state.cookies
        browser = await self._get_browser()
        return await self._fetch_cookies(browser)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Perform an HTTP request with the session cookies attached.

        Set-Cookie headers on the response are merged into the jar.

        Raises
        ------
        NotLoggedInError
            If the API answers 401.
        """
        jar = await self._get_cookies()
        request_headers = dict(headers or {})
        request_headers["Cookie"] = jar.header()

        async with httpx.AsyncClient(
            timeout=self.settings.http_timeout,
            transport=self._transport,
        ) as client:
            resp = await client.request(method, url, headers=request_headers, **kwargs)

        set_cookies = resp.headers.get_list("set-cookie")
        if set_cookies and self._state.cookies is not None:
            self._state.cookies.update_from_headers(set_cookies)

        if resp.status_code == 401:
            raise NotLoggedInError()
        return resp

    async def _get_json(self, url: str) -> Any:
        resp = await self.fetch(url)
        if resp.is_error:
            raise CosenseRequestError(resp.status_code, url)
        return resp.json()

    async def _get_text(self, url: str) -> str:
        resp = await self.fetch(url)
        if resp.is_error:
            raise CosenseRequestError(resp.status_code, url)
        return resp.text

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_projects(self) -> List[Project]:
        data = await self._get_json(self.routes.projects())
        return [Project.model_validate(p) for p in data.get("projects", [])]

    async def retrieve_project(self, project: str) -> Project:
        return Project.model_validate(await self._get_json(self.routes.project(project)))

    async def list_pages(self, project: str) -> PageList:
        return PageList.model_validate(await self._get_json(self.routes.pages(project)))

    async def retrieve_page(self, project: str, title: str) -> Page:
        return Page.model_validate(await self._get_json(self.routes.page(project, title)))

    async def retrieve_page_text(self, project: str, title: str) -> str:
        return await self._get_text(self.routes.page_text(project, title))

    async def retrieve_smart_context(self, project: str, page_id: str, hops: int) -> str:
        return await self._get_text(self.routes.smart_context(project, page_id, hops))

    async def search_pages(
        self,
        project: str,
        query: str,
        skip: Optional[int] = None,
        sort: Optional[str] = None,
        filter_type: Optional[str] = None,
        filter_value: Optional[str] = None,
        limit: Optional[int] = None,
        field: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = self.routes.search(
            project,
            query,
            skip=skip,
            sort=sort,
            filter_type=filter_type,
            filter_value=filter_value,
            limit=limit,
            field=field,
        )
        return await self._get_json(url)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_line(self, project: str, title: str, text: str, index: int) -> ActionResult:
        return await self._edit("insert", project, title, text, index)

    async def update_line(self, project: str, title: str, text: str, index: int) -> ActionResult:
        return await self._edit("update", project, title, text, index)

    async def _edit(
        self,
        action: str,
        project: str,
        title: str,
        text: str,
        index: int,
    ) -> ActionResult:
        page = await self.visit(self.routes.web_page(project, title))
        editor = self._editor_factory(page)

        try:
            if not await editor.is_available():
                return ActionResult(success=False, message=EDITOR_NOT_FOUND)
            try:
                if action == "insert":
                    await editor.insert_line(text, index)
                else:
                    await editor.update_line(text, index)
                await editor.wait_for_save()
            except EditorScriptError as exc:
                logger.warning(
                    "Line %s failed on %s/%s at %d: %s",
                    action, project, title, index, exc,
                )
                return ActionResult(success=False, message=str(exc))
        finally:
            await editor.close()

        logger.info("Line %s saved on %s/%s at %d", action, project, title, index)
        return ActionResult(success=True)
