"""
页面动作执行器

所有基于选择器 / 文本的动作共用同一套策略：
1. 解析定位；
2. 在整个定位结果上执行动作；
3. 如果定位结果有多个元素且动作失败，改为只对第一个元素重试一次；
4. 任何失败都转换成 ActionResult，不会抛出异常。
"""
import base64
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .artifacts import ScreenshotStore
from .config import FILL_KEY_DELAY_MS
from .locators import LocatorMatch, Target, TargetKind, resolve_target
from .models import ActionResult

logger = logging.getLogger(__name__)

# 在页面中执行脚本，同时收集执行期间的 console 输出
EVALUATE_WRAPPER = """
async (script) => {
  const logs = [];
  const original = {};
  for (const method of ['log', 'info', 'warn', 'error']) {
    original[method] = console[method];
    console[method] = (...args) => {
      logs.push(`[${method}] ${args.join(' ')}`);
      original[method].apply(console, args);
    };
  }
  try {
    let result = eval(script);
    if (result instanceof Promise) {
      result = await result;
    }
    return { result, logs };
  } finally {
    Object.assign(console, original);
  }
}
"""

Performer = Callable[[Any, Optional[str]], Awaitable[Any]]

_PERFORMERS: Dict[str, Performer] = {
    "click": lambda locator, value: locator.click(),
    "fill": lambda locator, value: locator.press_sequentially(value, delay=FILL_KEY_DELAY_MS),
    "select": lambda locator, value: locator.select_option(value),
    "hover": lambda locator, value: locator.hover(),
}

# (成功文本, 失败描述)
_MESSAGES: Dict[Tuple[str, TargetKind], Tuple[str, str]] = {
    ("click", TargetKind.SELECTOR): ("Clicked: {target}", "click {target}"),
    ("click", TargetKind.TEXT): ("Clicked element with text: {target}", "click element with text {target}"),
    ("fill", TargetKind.SELECTOR): ("Filled {target} with: {value}", "fill {target}"),
    ("fill", TargetKind.TEXT): ("Filled element with text {target} with: {value}", "fill element with text {target}"),
    ("select", TargetKind.SELECTOR): ("Selected {target} with: {value}", "select {target}"),
    ("select", TargetKind.TEXT): (
        "Selected element with text {target} with value: {value}",
        "select element with text {target}",
    ),
    ("hover", TargetKind.SELECTOR): ("Hovered {target}", "hover {target}"),
    ("hover", TargetKind.TEXT): ("Hovered element with text: {target}", "hover element with text {target}"),
}


class ActionExecutor:
    """在当前页面上执行动作"""

    def __init__(self, screenshots: ScreenshotStore):
        self.screenshots = screenshots

    async def navigate(self, page, url: str) -> ActionResult:
        try:
            await page.goto(url)
        except Exception as e:
            logger.warning(f"导航失败 {url}: {e}")
            return ActionResult.failure(f"Failed to navigate to {url}: {e}")
        return ActionResult.success(f"Navigated to {url}")

    async def click(self, page, target: Target) -> ActionResult:
        return await self.perform(page, "click", target)

    async def fill(self, page, target: Target, value: str) -> ActionResult:
        return await self.perform(page, "fill", target, value)

    async def select(self, page, target: Target, value: str) -> ActionResult:
        return await self.perform(page, "select", target, value)

    async def hover(self, page, target: Target) -> ActionResult:
        return await self.perform(page, "hover", target)

    async def perform(self, page, action: str, target: Target, value: Optional[str] = None) -> ActionResult:
        """解析 -> 执行 -> 多元素时退回第一个元素重试"""
        run = _PERFORMERS[action]
        success_template, failure_template = _MESSAGES[(action, target.kind)]
        success_text = success_template.format(target=target.value, value=value)
        failure_subject = failure_template.format(target=target.value)

        try:
            resolution = await resolve_target(page, target)
        except Exception as e:
            logger.warning(f"定位失败 {target.describe()}: {e}")
            return ActionResult.failure(f"Failed to {failure_subject}: {e}")

        try:
            await run(resolution.locator, value)
            return ActionResult.success(success_text)
        except Exception as e:
            if resolution.match != LocatorMatch.MULTIPLE:
                logger.warning(f"{action} 失败 {target.describe()}: {e}")
                return ActionResult.failure(f"Failed to {failure_subject}: {e}")
            logger.info(
                f"{target.describe()} 匹配到 {resolution.count} 个元素，改为对第一个元素重试 {action}"
            )

        try:
            await run(resolution.first(), value)
            return ActionResult.success(success_text)
        except Exception as e:
            logger.warning(f"{action} 重试失败 {target.describe()}: {e}")
            return ActionResult.failure(f"Failed (twice) to {failure_subject}: {e}")

    async def screenshot(
        self,
        page,
        name: str,
        selector: Optional[str] = None,
        full_page: bool = False,
    ) -> ActionResult:
        """截取整页 / 视口 / 指定元素，按名字保存"""
        try:
            if selector:
                resolution = await resolve_target(page, Target.selector(selector))
                if resolution.match == LocatorMatch.NOT_FOUND:
                    return ActionResult.failure(f"Element not found: {selector}")
                locator = resolution.first() if resolution.is_ambiguous else resolution.locator
                data = await locator.screenshot()
            else:
                data = await page.screenshot(full_page=full_page)
        except Exception as e:
            logger.warning(f"截图失败 {name}: {e}")
            return ActionResult.failure(f"Failed to take screenshot '{name}': {e}")

        if not data:
            return ActionResult.failure(f"Element not found: {selector}" if selector else "Screenshot failed")

        encoded = base64.b64encode(data).decode("ascii")
        self.screenshots.put(name, encoded)
        return ActionResult.success(f"Screenshot '{name}' taken", image=encoded)

    async def evaluate(self, page, script: str) -> ActionResult:
        """在页面中执行脚本，返回结果和执行期间的 console 输出"""
        try:
            outcome = await page.evaluate(EVALUATE_WRAPPER, script)
        except Exception as e:
            logger.warning(f"脚本执行失败: {e}")
            return ActionResult.failure(f"Script execution failed: {e}")

        outcome = outcome or {}
        result_json = json.dumps(outcome.get("result"), ensure_ascii=False, indent=2, default=str)
        logs = "\n".join(outcome.get("logs") or [])
        return ActionResult.success(f"Execution result:\n{result_json}\n\nConsole output:\n{logs}")
