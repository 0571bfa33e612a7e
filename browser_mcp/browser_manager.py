"""
Playwright 浏览器管理器核心类
负责唯一的浏览器会话的启动、连接、关闭和自动恢复
"""
import logging
from typing import Any, Dict, Optional

from playwright.async_api import Page, async_playwright

from .artifacts import ScreenshotStore
from .config import (
    CONSOLE_LOG_URI,
    DEFAULT_BROWSER_TYPE,
    DEFAULT_HEADLESS,
    SUPPORTED_BROWSER_TYPES,
)
from .errors import LaunchError, ValidationError
from .log_store import EventLogStore
from .models import BrowserSession, BrowserType, ConnectionMode
from .notifications import ResourceNotifier

logger = logging.getLogger(__name__)


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    return int(value)


class PlaywrightBrowserManager:
    """Playwright 浏览器管理器

    同一时间最多只有一个会话；启动或连接新会话之前会先完整关闭旧会话。
    """

    def __init__(
        self,
        playwright=None,
        log_store: Optional[EventLogStore] = None,
        screenshots: Optional[ScreenshotStore] = None,
        notifier: Optional[ResourceNotifier] = None,
    ):
        self.playwright = playwright
        self._owns_playwright = playwright is None
        self.notifier = notifier or ResourceNotifier()
        self.log_store = log_store or EventLogStore()
        if self.log_store.on_console_entry is None:
            self.log_store.on_console_entry = lambda _entry: self.notifier.resource_updated(CONSOLE_LOG_URI)
        self.screenshots = screenshots or ScreenshotStore()
        if self.screenshots.on_change is None:
            self.screenshots.on_change = self.notifier.resource_list_changed
        self.session: Optional[BrowserSession] = None

    @property
    def is_active(self) -> bool:
        return self.session is not None

    async def start(self):
        """启动 Playwright 驱动（异步）"""
        if self.playwright is None:
            self.playwright = await async_playwright().start()

    async def stop(self):
        """关闭会话并停止 Playwright（异步）"""
        await self.close()
        if self.playwright is not None and self._owns_playwright:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.debug(f"停止 Playwright 失败: {e}")
            self.playwright = None

    # 参数校验
    @staticmethod
    def validate_launch_options(
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        cdp_endpoint: Optional[str] = None,
        debug_port: Optional[int] = None,
        viewport: Optional[Dict[str, Any]] = None,
        window_position: Optional[Dict[str, Any]] = None,
    ) -> BrowserType:
        """校验启动参数，不修改任何状态"""
        name = browser_type or DEFAULT_BROWSER_TYPE
        if name not in SUPPORTED_BROWSER_TYPES:
            raise ValidationError(
                f"Unsupported browserType: {name}. Expected one of: {', '.join(SUPPORTED_BROWSER_TYPES)}"
            )
        kind = BrowserType(name)

        if headless is not None and not isinstance(headless, bool):
            raise ValidationError(f"headless must be a boolean, got {headless!r}")

        if cdp_endpoint is not None:
            if not isinstance(cdp_endpoint, str) or not cdp_endpoint.strip():
                raise ValidationError("cdpEndpoint must be a non-empty string")
            if kind != BrowserType.CHROMIUM:
                raise ValidationError("CDP connection only works with chromium")

        if debug_port is not None:
            if cdp_endpoint is not None:
                raise ValidationError("debugPort cannot be combined with cdpEndpoint")
            if kind != BrowserType.CHROMIUM:
                raise ValidationError("debugPort only works with chromium")
            port = _require_int(debug_port, "debugPort")
            if not 0 < port < 65536:
                raise ValidationError(f"debugPort out of range: {port}")

        if viewport is not None:
            if not isinstance(viewport, dict):
                raise ValidationError("viewport must be an object with width and height")
            for key in ("width", "height"):
                if _require_int(viewport.get(key), f"viewport.{key}") <= 0:
                    raise ValidationError(f"viewport.{key} must be positive")

        if window_position is not None:
            if not isinstance(window_position, dict):
                raise ValidationError("windowPosition must be an object with x and y")
            for key in ("x", "y"):
                _require_int(window_position.get(key), f"windowPosition.{key}")

        return kind

    # 生命周期
    async def launch(
        self,
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        cdp_endpoint: Optional[str] = None,
        debug_port: Optional[int] = None,
        viewport: Optional[Dict[str, Any]] = None,
        window_position: Optional[Dict[str, Any]] = None,
    ) -> str:
        """启动新浏览器或通过 CDP 连接已有浏览器，返回描述文本（异步）

        已有会话会先被关闭。失败时抛出 LaunchError，此时没有活动会话。
        """
        kind = self.validate_launch_options(
            browser_type, headless, cdp_endpoint, debug_port, viewport, window_position
        )
        headless = DEFAULT_HEADLESS if headless is None else headless

        await self.close()

        try:
            await self.start()
        except Exception as e:
            logger.error(f"启动 Playwright 失败: {e}", exc_info=True)
            raise LaunchError(f"Failed to launch browser: {e}") from e

        browser = None
        context = None
        page = None
        try:
            if cdp_endpoint:
                browser = await self.playwright.chromium.connect_over_cdp(cdp_endpoint)
                contexts = browser.contexts
                context = contexts[0] if contexts else await browser.new_context()
                mode = ConnectionMode.CDP
            else:
                launch_args = []
                if debug_port is not None:
                    launch_args.append(f"--remote-debugging-port={int(debug_port)}")
                if window_position and not headless:
                    if kind == BrowserType.CHROMIUM:
                        launch_args.append(
                            f"--window-position={int(window_position['x'])},{int(window_position['y'])}"
                        )
                    else:
                        logger.warning(f"{kind.value} 不支持 windowPosition，已忽略")

                browser_launcher = getattr(self.playwright, kind.value)
                browser = await browser_launcher.launch(headless=headless, args=launch_args)

                context_options: Dict[str, Any] = {}
                if viewport:
                    context_options["viewport"] = {
                        "width": int(viewport["width"]),
                        "height": int(viewport["height"]),
                    }
                context = await browser.new_context(**context_options)
                mode = ConnectionMode.LAUNCHED

            page = await context.new_page()
        except Exception as e:
            logger.error(f"启动浏览器失败: {e}", exc_info=True)
            await self._teardown(page, context, browser)
            raise LaunchError(f"Failed to launch browser: {e}") from e

        self.session = BrowserSession(
            browser=browser,
            context=context,
            page=page,
            browser_type=kind,
            connection_mode=mode,
            headless=headless,
            cdp_endpoint=cdp_endpoint,
            debug_port=int(debug_port) if debug_port is not None else None,
        )
        self.log_store.attach(page)
        description = self.session.describe()
        logger.info(description)
        return description

    async def close(self) -> bool:
        """关闭当前会话（异步，幂等），没有会话时返回 False"""
        session = self.session
        self.session = None
        self.log_store.detach()
        self.log_store.clear()
        if session is None:
            return False
        await self._teardown(session.page, session.context, session.browser)
        logger.info("浏览器会话已关闭")
        return True

    async def ensure_active(self) -> Page:
        """返回可用的页面；没有会话时以默认配置启动，页面被关闭时重建（异步）"""
        if self.session is None:
            logger.info("没有活动的浏览器会话，使用默认配置自动启动")
            await self.launch()
            return self.session.page

        if self._is_page_closed(self.session.page):
            logger.info("页面已被关闭，重新创建页面")
            try:
                page = await self.session.context.new_page()
            except Exception as e:
                logger.error(f"重新创建页面失败: {e}", exc_info=True)
                await self.close()
                raise LaunchError(f"Failed to recreate page: {e}") from e
            self.session.page = page
            self.log_store.attach(page)

        return self.session.page

    # 辅助方法
    @staticmethod
    def _is_page_closed(page) -> bool:
        try:
            return page.is_closed()
        except Exception:
            return True

    @staticmethod
    async def _teardown(page, context, browser) -> None:
        """按 page -> context -> browser 顺序关闭，每一步的失败互不影响"""
        for label, handle in (("page", page), ("context", context), ("browser", browser)):
            if handle is None:
                continue
            try:
                await handle.close()
            except Exception as e:
                logger.debug(f"关闭 {label} 失败: {e}")
