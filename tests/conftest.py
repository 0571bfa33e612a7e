from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from browser_mcp.browser_manager import PlaywrightBrowserManager


class FakeLocator:
    """Locator stub: strict mode fails on >1 match, missing elements time out."""

    def __init__(self, page: "FakePage", key: tuple, count: int, is_first: bool = False) -> None:
        self.page = page
        self.key = key
        self._count = count
        self.is_first = is_first

    async def count(self) -> int:
        return self._count

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self.page, self.key, min(self._count, 1), is_first=True)

    async def _act(self, action: str, *args: Any, **kwargs: Any) -> Any:
        self.page.calls.append((action, self.key, self.is_first, args, kwargs))
        if action in self.page.failing_actions:
            raise Exception(f"element is not {action}able")
        if self._count == 0:
            raise Exception("Timeout 30000ms exceeded.")
        if self._count > 1:
            raise Exception(f"strict mode violation: locator resolved to {self._count} elements")
        return None

    async def click(self) -> None:
        await self._act("click")

    async def press_sequentially(self, value: str, delay: float = 0) -> None:
        await self._act("fill", value, delay=delay)

    async def select_option(self, value: str) -> None:
        await self._act("select", value)

    async def hover(self) -> None:
        await self._act("hover")

    async def screenshot(self) -> bytes:
        await self._act("screenshot")
        return self.page.element_png


class FakePage:
    def __init__(self) -> None:
        self.elements: dict[str, int] = {}
        self.texts: dict[str, int] = {}
        self.failing_actions: set[str] = set()
        self.calls: list[tuple] = []
        self.handlers: dict[str, list] = {}
        self.closed = False
        self.close_error: Exception | None = None
        self.goto_error: Exception | None = None
        self.visited: list[str] = []
        self.page_png = b"\x89PNG-page"
        self.element_png = b"\x89PNG-element"
        self.screenshot_calls: list[dict] = []
        self.evaluate_result: Any = {"result": None, "logs": []}
        self.evaluate_error: Exception | None = None
        self.evaluated: list[tuple] = []

    # locators
    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, ("css", selector), self.elements.get(selector, 0))

    def get_by_text(self, text: str, exact: bool = False) -> FakeLocator:
        if exact:
            count = self.texts.get(text, 0)
        else:
            count = sum(c for t, c in self.texts.items() if text.lower() in t.lower())
        return FakeLocator(self, ("text", text, exact), count)

    # page operations
    async def goto(self, url: str) -> None:
        if self.goto_error is not None:
            raise self.goto_error
        self.visited.append(url)

    async def screenshot(self, full_page: bool = False) -> bytes:
        self.screenshot_calls.append({"full_page": full_page})
        return self.page_png

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append((expression, arg))
        if self.evaluate_error is not None:
            raise self.evaluate_error
        return self.evaluate_result

    # events
    def on(self, event: str, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler) -> None:
        self.handlers.get(event, []).remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.handlers.get(event, [])):
            handler(payload)

    def emit_console(self, type_: str, text: str) -> None:
        self.emit("console", SimpleNamespace(type=type_, text=text))

    # lifecycle
    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeContext:
    def __init__(self, options: dict | None = None) -> None:
        self.options = options or {}
        self.pages: list[FakePage] = []
        self.closed = False
        self.new_page_error: Exception | None = None

    async def new_page(self) -> FakePage:
        if self.new_page_error is not None:
            raise self.new_page_error
        page = FakePage()
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, contexts: list[FakeContext] | None = None) -> None:
        self.contexts = list(contexts or [])
        self.closed = False
        self.new_context_error: Exception | None = None

    async def new_context(self, **options: Any) -> FakeContext:
        if self.new_context_error is not None:
            raise self.new_context_error
        context = FakeContext(options)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


class FakeBrowserType:
    def __init__(self, name: str) -> None:
        self.name = name
        self.launches: list[dict] = []
        self.browsers: list[FakeBrowser] = []
        self.launch_error: Exception | None = None
        self.cdp_contexts: list[FakeContext] = []
        self.cdp_endpoints: list[str] = []
        self.next_browser: FakeBrowser | None = None

    async def launch(self, headless: bool = True, args: list | None = None) -> FakeBrowser:
        self.launches.append({"headless": headless, "args": list(args or [])})
        if self.launch_error is not None:
            raise self.launch_error
        browser = self.next_browser or FakeBrowser()
        self.next_browser = None
        self.browsers.append(browser)
        return browser

    async def connect_over_cdp(self, endpoint: str) -> FakeBrowser:
        self.cdp_endpoints.append(endpoint)
        browser = FakeBrowser(self.cdp_contexts)
        self.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self) -> None:
        self.chromium = FakeBrowserType("chromium")
        self.firefox = FakeBrowserType("firefox")
        self.webkit = FakeBrowserType("webkit")
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


class RecordingNotifier:
    def __init__(self) -> None:
        self.updated: list[str] = []
        self.list_changed = 0

    def resource_updated(self, uri: str) -> None:
        self.updated.append(uri)

    def resource_list_changed(self) -> None:
        self.list_changed += 1


@pytest.fixture
def fake_playwright() -> FakePlaywright:
    return FakePlaywright()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def manager(fake_playwright: FakePlaywright, notifier: RecordingNotifier) -> PlaywrightBrowserManager:
    return PlaywrightBrowserManager(playwright=fake_playwright, notifier=notifier)


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def page_factory():
    return FakePage


@pytest.fixture
def browser_factory():
    return FakeBrowser


@pytest.fixture
def context_factory():
    return FakeContext
