from __future__ import annotations

import asyncio
import base64

import pytest

from browser_mcp.artifacts import ScreenshotStore
from browser_mcp.config import CONSOLE_LOG_URI
from browser_mcp.errors import ResourceNotFound
from browser_mcp.log_store import EventLogStore
from browser_mcp.notifications import ResourceNotifier
from browser_mcp.resources import list_resources, read_resource, screenshot_uri


@pytest.fixture
def stores() -> tuple[EventLogStore, ScreenshotStore]:
    return EventLogStore(), ScreenshotStore()


def test_list_always_includes_console_and_each_screenshot(stores) -> None:
    log_store, screenshots = stores
    screenshots.put("home", base64.b64encode(b"png").decode("ascii"))

    resources = list_resources(log_store, screenshots)

    assert [str(r.uri).rstrip("/") for r in resources] == [CONSOLE_LOG_URI, "screenshot://home"]
    assert [r.mimeType for r in resources] == ["text/plain", "image/png"]


def test_read_console_renders_entries(stores) -> None:
    log_store, screenshots = stores
    log_store.record_console("log", "ready")
    log_store.record_console("error", "boom")

    contents = read_resource(CONSOLE_LOG_URI, log_store, screenshots)

    assert contents.content == "[log] ready\n[error] boom"
    assert contents.mime_type == "text/plain"


def test_read_screenshot_returns_png_bytes(stores) -> None:
    log_store, screenshots = stores
    screenshots.put("my shot", base64.b64encode(b"\x89PNG").decode("ascii"))

    contents = read_resource("screenshot://my%20shot/", log_store, screenshots)

    assert contents.content == b"\x89PNG"
    assert contents.mime_type == "image/png"
    assert screenshot_uri("my shot") == "screenshot://my shot"


@pytest.mark.parametrize("uri", ["screenshot://missing", "file:///etc/passwd", "console://other"])
def test_unknown_resource_raises(stores, uri) -> None:
    log_store, screenshots = stores

    with pytest.raises(ResourceNotFound, match="Resource not found"):
        read_resource(uri, log_store, screenshots)


class _Session:
    def __init__(self, fail: bool = False) -> None:
        self.updated: list[str] = []
        self.list_changed = 0
        self.fail = fail

    async def send_resource_updated(self, uri) -> None:
        if self.fail:
            raise RuntimeError("stream closed")
        self.updated.append(uri)

    async def send_resource_list_changed(self) -> None:
        self.list_changed += 1


def test_notifier_without_session_drops_signal() -> None:
    notifier = ResourceNotifier()

    async def scenario():
        notifier.resource_updated(CONSOLE_LOG_URI)
        notifier.resource_list_changed()
        await asyncio.sleep(0)

    asyncio.run(scenario())


def test_notifier_sends_on_running_loop() -> None:
    notifier = ResourceNotifier()
    session = _Session()
    notifier.bind(session)

    async def scenario():
        notifier.resource_updated(CONSOLE_LOG_URI)
        notifier.resource_list_changed()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    asyncio.run(scenario())

    assert session.updated == [CONSOLE_LOG_URI]
    assert session.list_changed == 1


def test_notifier_outside_loop_and_send_failures_are_contained() -> None:
    notifier = ResourceNotifier()
    session = _Session(fail=True)
    notifier.bind(session)

    notifier.resource_updated(CONSOLE_LOG_URI)

    async def scenario():
        notifier.resource_updated(CONSOLE_LOG_URI)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert session.updated == []

    notifier.unbind()
    asyncio.run(scenario())
