"""
Browser Automation Layer

This module isolates every Playwright call behind small protocols so the
Cosense client can be exercised with in-memory fakes.

Responsibilities
----------------
- Launch a persistent Chromium profile (headless or interactive).
- Open pages, read the browser's cookies, close everything on request.
- Drive the in-page Cosense editor (`window.cosense.Page`) through
  `RemoteEditor`, turning script errors into `EditorScriptError`.
- Map "target closed" style Playwright errors to `SessionClosedError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from playwright.async_api import (
    BrowserContext,
    Error as PlaywrightError,
    Page as PlaywrightPageHandle,
    Playwright,
    async_playwright,
)

from ..core.errors import EditorScriptError, SessionClosedError

logger = logging.getLogger("mcp.cosense.browser")

DEFAULT_CHANNEL = "chrome"

_CLOSED_MARKERS = (
    "target closed",
    "has been closed",
    "execution context was destroyed",
)


# ---------------------------------------------------------------------
# Launch configuration
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class LaunchOptions:
    user_data_dir: Path
    headless: bool = True
    debugging_port: Optional[int] = None
    channel: Optional[str] = None
    executable_path: Optional[str] = None

    def __post_init__(self) -> None:
        if self.channel is None and self.executable_path is None:
            object.__setattr__(self, "channel", DEFAULT_CHANNEL)

    def playwright_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"headless": self.headless}
        if self.executable_path:
            kwargs["executable_path"] = self.executable_path
        elif self.channel:
            kwargs["channel"] = self.channel
        if self.debugging_port is not None:
            kwargs["args"] = [f"--remote-debugging-port={self.debugging_port}"]
        return kwargs


@dataclass
class PortAllocator:
    """Hands out consecutive remote-debugging ports, one per client."""

    start: int = 9022
    _next: Optional[int] = field(default=None, init=False, repr=False)

    def allocate(self) -> int:
        if self._next is None:
            self._next = self.start
        port = self._next
        self._next += 1
        return port


# ---------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------

class BrowserPage(Protocol):
    async def hostname(self) -> str: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...

    async def close(self) -> None: ...


class BrowserSession(Protocol):
    async def new_page(
        self,
        url: str,
        viewport: Optional[Tuple[int, int]] = None,
    ) -> BrowserPage: ...

    async def cookies(self) -> List[Dict[str, Any]]: ...

    async def close(self) -> None: ...


class BrowserLauncher(Protocol):
    async def launch(self, options: LaunchOptions) -> BrowserSession: ...


class RemoteEditor(Protocol):
    async def is_available(self) -> bool: ...

    async def insert_line(self, text: str, index: int) -> None: ...

    async def update_line(self, text: str, index: int) -> None: ...

    async def wait_for_save(self) -> None: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------

def is_session_closed_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _CLOSED_MARKERS)


class PlaywrightPage:
    def __init__(self, page: PlaywrightPageHandle) -> None:
        self._page = page

    async def hostname(self) -> str:
        return await self.evaluate("() => window.location.hostname")

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        try:
            return await self._page.evaluate(expression, arg)
        except PlaywrightError as exc:
            if is_session_closed_error(exc):
                raise SessionClosedError(str(exc)) from exc
            raise

    async def close(self) -> None:
        await self._page.close()


class PlaywrightSession:
    def __init__(self, playwright: Playwright, context: BrowserContext) -> None:
        self._playwright = playwright
        self._context = context

    async def new_page(
        self,
        url: str,
        viewport: Optional[Tuple[int, int]] = None,
    ) -> PlaywrightPage:
        page = await self._context.new_page()
        try:
            if viewport:
                width, height = viewport
                await page.set_viewport_size({"width": width, "height": height})
            await page.goto(url, wait_until="networkidle")
        except BaseException:
            await page.close()
            raise
        return PlaywrightPage(page)

    async def cookies(self) -> List[Dict[str, Any]]:
        return [dict(c) for c in await self._context.cookies()]

    async def close(self) -> None:
        try:
            await self._context.close()
        finally:
            await self._playwright.stop()


class PlaywrightLauncher:
    """Launches a persistent Chromium profile via Playwright."""

    async def launch(self, options: LaunchOptions) -> PlaywrightSession:
        kwargs = options.playwright_kwargs()
        logger.info(
            "Launching browser (headless=%s, profile=%s, port=%s)",
            options.headless,
            options.user_data_dir,
            options.debugging_port,
        )
        playwright = await async_playwright().start()
        try:
            context = await playwright.chromium.launch_persistent_context(
                str(options.user_data_dir),
                **kwargs,
            )
        except BaseException:
            await playwright.stop()
            raise
        return PlaywrightSession(playwright, context)


# ---------------------------------------------------------------------
# In-page editor
# ---------------------------------------------------------------------

_EDITOR_PRESENT_JS = (
    "() => typeof window.cosense !== 'undefined' && !!window.cosense.Page"
)

# Errors thrown by the editor are returned as strings, never raised across
# the page boundary.
_EDITOR_CALL_JS = """
async ([method, text, index]) => {
  try {
    window.cosense.Page[method](text, index);
    return null;
  } catch (error) {
    return String(error);
  }
}
"""

_EDITOR_WAIT_JS = """
async () => {
  try {
    await window.cosense.Page.waitForSave();
    return null;
  } catch (error) {
    return String(error);
  }
}
"""


class PageEditor:
    """RemoteEditor backed by `window.cosense.Page` on a live page."""

    def __init__(self, page: BrowserPage) -> None:
        self._page = page

    async def is_available(self) -> bool:
        return bool(await self._page.evaluate(_EDITOR_PRESENT_JS))

    async def insert_line(self, text: str, index: int) -> None:
        await self._call("insertLine", text, index)

    async def update_line(self, text: str, index: int) -> None:
        await self._call("updateLine", text, index)

    async def wait_for_save(self) -> None:
        error = await self._page.evaluate(_EDITOR_WAIT_JS)
        if error is not None:
            raise EditorScriptError(error)

    async def close(self) -> None:
        await self._page.close()

    async def _call(self, method: str, text: str, index: int) -> None:
        error = await self._page.evaluate(_EDITOR_CALL_JS, [method, text, index])
        if error is not None:
            raise EditorScriptError(error)
