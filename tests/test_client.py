import asyncio
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from cosense_mcp_server.core.errors import (
    CosenseRequestError,
    EditorScriptError,
    NotLoggedInError,
    SessionClosedError,
)
from cosense_mcp_server.cosense import client as client_module
from cosense_mcp_server.cosense.browser import PortAllocator
from cosense_mcp_server.cosense.client import AUTH_TIMEOUT, EDITOR_NOT_FOUND, CosenseClient
from cosense_mcp_server.cosense.models import Project

from conftest import FakeEditor, FakeLauncher


# ---------------------------------------------------------------------
# Construction / browser lifecycle
# ---------------------------------------------------------------------

def test_clients_sharing_allocator_get_distinct_ports(cosense_settings, launcher):
    ports = PortAllocator(9022)
    first = CosenseClient(cosense_settings, ports=ports, launcher=launcher)
    second = CosenseClient(cosense_settings, ports=ports, launcher=launcher)

    assert first.launch_options.debugging_port == 9022
    assert second.launch_options.debugging_port == 9023


def test_explicit_port_and_default_channel(cosense_settings, launcher):
    client = CosenseClient(cosense_settings, debugging_port=9500, launcher=launcher)
    kwargs = client.launch_options.playwright_kwargs()

    assert kwargs["channel"] == "chrome"
    assert kwargs["headless"] is True
    assert kwargs["args"] == ["--remote-debugging-port=9500"]
    assert client.launch_options.user_data_dir == cosense_settings.config_dir / "cosense-client"


def test_executable_path_replaces_channel(cosense_settings, launcher):
    cosense_settings.browser_executable_path = "/usr/bin/chromium"
    client = CosenseClient(cosense_settings, debugging_port=9500, launcher=launcher)
    kwargs = client.launch_options.playwright_kwargs()

    assert kwargs["executable_path"] == "/usr/bin/chromium"
    assert "channel" not in kwargs


@pytest.mark.asyncio
async def test_browser_is_launched_lazily_once(make_client, launcher):
    client = make_client()
    assert launcher.sessions == []

    await client.list_projects()
    await client.list_projects()

    assert len(launcher.sessions) == 1
    assert launcher.sessions[0].options.headless is True
    assert client.has_browser


@pytest.mark.asyncio
async def test_cleanup_is_idempotent(make_client, launcher):
    client = make_client()
    await client.list_projects()
    session = launcher.sessions[0]

    await client.cleanup()
    await client.cleanup()

    assert session.closed
    assert not client.has_browser


@pytest.mark.asyncio
async def test_async_context_manager_cleans_up(make_client, launcher):
    async with make_client() as client:
        await client.list_projects()
    assert launcher.sessions[0].closed


@pytest.mark.asyncio
async def test_exit_hook_released_on_cleanup(make_client, launcher, monkeypatch):
    fake_atexit = MagicMock()
    monkeypatch.setattr(client_module, "atexit", fake_atexit)
    client = make_client()

    await client.list_projects()
    await client.list_projects()
    fake_atexit.register.assert_called_once_with(client._cleanup_at_exit)

    await client.cleanup()
    await client.cleanup()
    fake_atexit.unregister.assert_called_once_with(client._cleanup_at_exit)

    # A relaunch registers the hook again
    await client.list_projects()
    assert fake_atexit.register.call_count == 2
    await client.cleanup()


# ---------------------------------------------------------------------
# fetch / cookies
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fetch_attaches_browser_cookies(make_client, requests_seen):
    client = make_client()
    await client.fetch("https://scrapbox.io/api/projects")

    assert requests_seen[0].headers["cookie"] == "connect.sid=s%3Aabc"


@pytest.mark.asyncio
async def test_fetch_merges_set_cookie_headers(make_client, requests_seen):
    def handler(request):
        return httpx.Response(
            200,
            headers=[
                ("set-cookie", "connect.sid=rotated; Path=/; HttpOnly"),
                ("set-cookie", "csrf=token; Path=/"),
            ],
            json={"projects": []},
        )

    client = make_client(handler)
    await client.fetch("https://scrapbox.io/api/projects")
    await client.fetch("https://scrapbox.io/api/projects")

    assert requests_seen[1].headers["cookie"] == "connect.sid=rotated; csrf=token"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.list_projects(),
        lambda c: c.retrieve_project("proj"),
        lambda c: c.list_pages("proj"),
        lambda c: c.retrieve_page("proj", "Home"),
        lambda c: c.retrieve_page_text("proj", "Home"),
        lambda c: c.retrieve_smart_context("proj", "pid", 2),
        lambda c: c.search_pages("proj", "query"),
        lambda c: c.fetch("https://scrapbox.io/api/anything", method="POST", json={"a": 1}),
    ],
)
async def test_unauthorized_always_raises_not_logged_in(make_client, call):
    client = make_client(lambda request: httpx.Response(401, json={"name": "Unauthorized"}))

    with pytest.raises(NotLoggedInError):
        await call(client)


@pytest.mark.asyncio
async def test_other_error_statuses_raise_request_error(make_client):
    client = make_client(lambda request: httpx.Response(404, json={"name": "NotFoundError"}))

    with pytest.raises(CosenseRequestError) as excinfo:
        await client.retrieve_page("proj", "Missing")
    assert excinfo.value.status_code == 404


# ---------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_projects_parses_and_keeps_unknown_fields(make_client, requests_seen):
    payload = {
        "projects": [
            {"id": "p1", "name": "proj", "displayName": "Proj", "brandNewField": 1},
        ]
    }
    client = make_client(lambda request: httpx.Response(200, json=payload))

    projects = await client.list_projects()

    assert requests_seen[0].url.path == "/api/projects"
    assert projects == [Project.model_validate(payload["projects"][0])]
    assert projects[0].to_json_dict() == payload["projects"][0]


@pytest.mark.asyncio
async def test_retrieve_page_text_is_unmodified(make_client, requests_seen):
    body = "Home\n  indented line\n[link] 日本語\n"
    client = make_client(lambda request: httpx.Response(200, text=body))

    assert await client.retrieve_page_text("proj", "a/b") == body
    assert requests_seen[0].url.raw_path == b"/api/pages/proj/a%2Fb/text"


@pytest.mark.asyncio
async def test_retrieve_page_builds_page_model(make_client):
    payload = {
        "id": "pid",
        "title": "Home",
        "lines": [{"id": "l0", "text": "Home"}, {"id": "l1", "text": "hello"}],
        "relatedPages": {"links1hop": [{"id": "r1", "title": "Other"}]},
    }
    client = make_client(lambda request: httpx.Response(200, json=payload))

    page = await client.retrieve_page("proj", "Home")

    assert page.id == "pid"
    assert [line.text for line in page.lines] == ["Home", "hello"]
    assert page.relatedPages.links1hop[0].title == "Other"


@pytest.mark.asyncio
async def test_search_pages_sends_defaults(make_client, requests_seen):
    client = make_client(lambda request: httpx.Response(200, json={"pages": []}))

    assert await client.search_pages("proj", "needle") == {"pages": []}

    params = parse_qs(urlsplit(str(requests_seen[0].url)).query, keep_blank_values=True)
    assert params["q"] == ["needle"]
    assert params["skip"] == ["0"]
    assert params["sort"] == ["pageRank"]
    assert params["limit"] == ["100"]
    assert params["field"] == ["lines"]


# ---------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_insert_line_success(make_client, editor, launcher):
    client = make_client()

    result = await client.insert_line("proj", "My Page", "new text", 3)

    assert result.success is True
    assert editor.calls == [("insert", "new text", 3), "wait"]
    assert editor.closed
    assert editor.page.url == "https://scrapbox.io/proj/My%20Page"
    assert editor.page.viewport == (1280, 800)


@pytest.mark.asyncio
async def test_update_line_success(make_client, editor):
    client = make_client()

    result = await client.update_line("proj", "Home", "changed", 0)

    assert result.success is True
    assert editor.calls == [("update", "changed", 0), "wait"]
    assert editor.closed


@pytest.mark.asyncio
async def test_edit_without_editor_reports_failure(make_client, cosense_settings, launcher):
    editor = FakeEditor(available=False)
    client = make_client(editor_factory=editor)

    result = await client.insert_line("proj", "Home", "x", 1)

    assert result.success is False
    assert result.message == EDITOR_NOT_FOUND
    assert editor.calls == []
    assert editor.closed


@pytest.mark.asyncio
@pytest.mark.parametrize("stage", ["edit", "save"])
async def test_editor_script_error_becomes_failure_result(make_client, stage):
    editor = FakeEditor(fail_with=EditorScriptError("Error: line out of range"), fail_on=stage)
    client = make_client(editor_factory=editor)

    result = await client.update_line("proj", "Home", "x", 99)

    assert result.success is False
    assert result.message == "Error: line out of range"
    assert editor.closed


@pytest.mark.asyncio
async def test_page_closed_even_when_save_times_out(make_client):
    editor = FakeEditor(fail_with=asyncio.TimeoutError(), fail_on="save")
    client = make_client(editor_factory=editor)

    with pytest.raises(asyncio.TimeoutError):
        await client.insert_line("proj", "Home", "x", 1)
    assert editor.closed


# ---------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_authenticate_times_out_when_location_never_changes(make_client, cosense_settings):
    launcher = FakeLauncher(hostnames=["accounts.google.com"])
    client = make_client(launcher=launcher)

    result = await client.authenticate()

    assert result.success is False
    assert result.message == AUTH_TIMEOUT
    assert client._sleep.await_count == cosense_settings.auth_poll_attempts

    session = launcher.sessions[0]
    assert session.options.headless is False
    assert session.pages[0].url == "https://scrapbox.io/login/google"
    assert session.closed


@pytest.mark.asyncio
async def test_authenticate_captures_cookies(make_client, requests_seen):
    launcher = FakeLauncher(
        cookies=[
            {"name": "connect.sid", "value": "fresh", "domain": "scrapbox.io"},
            {"name": "SID", "value": "google", "domain": ".google.com"},
        ],
        hostnames=["accounts.google.com", "accounts.google.com", "scrapbox.io"],
    )
    client = make_client(launcher=launcher)

    result = await client.authenticate()
    assert result.success is True
    assert client._sleep.await_count == 3

    await client.fetch("https://scrapbox.io/api/projects")

    assert requests_seen[0].headers["cookie"] == "connect.sid=fresh"
    # Cookies came from the login browser; no headless launch needed
    assert len(launcher.sessions) == 1


@pytest.mark.asyncio
async def test_authenticate_retries_after_session_closed(make_client):
    launcher = FakeLauncher(
        hostnames=[SessionClosedError("Target closed"), "scrapbox.io"],
    )
    client = make_client(launcher=launcher)

    result = await client.authenticate()

    assert result.success is True
    assert client._sleep.await_count == 2


@pytest.mark.asyncio
async def test_authenticate_propagates_other_errors(make_client):
    launcher = FakeLauncher(hostnames=[RuntimeError("browser crashed")])
    client = make_client(launcher=launcher)

    with pytest.raises(RuntimeError):
        await client.authenticate()
    assert launcher.sessions[0].closed


@pytest.mark.asyncio
async def test_authenticate_replaces_headless_session(make_client, launcher):
    client = make_client()
    await client.list_projects()
    headless = launcher.sessions[0]

    await client.authenticate()

    assert headless.closed
    assert not client.has_browser
