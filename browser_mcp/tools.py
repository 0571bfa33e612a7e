"""
MCP 工具定义和调用处理
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from mcp.types import Tool

from .actions import ActionExecutor
from .browser_manager import PlaywrightBrowserManager
from .config import DEFAULT_LOG_LIMIT, SUPPORTED_BROWSER_TYPES
from .errors import BrowserToolError, ValidationError
from .locators import Target
from .log_store import LOG_KINDS
from .models import ActionResult, ToolResult

logger = logging.getLogger(__name__)


def create_tools() -> List[Tool]:
    """创建并返回所有可用的浏览器工具列表"""
    return [
        Tool(
            name="browser_launch",
            description="启动新的浏览器，或通过 CDP 连接已有浏览器。会先关闭当前已打开的浏览器",
            inputSchema={
                "type": "object",
                "properties": {
                    "browserType": {
                        "type": "string",
                        "enum": list(SUPPORTED_BROWSER_TYPES),
                        "description": "浏览器类型（默认 chromium）"
                    },
                    "headless": {"type": "boolean", "description": "是否无头模式（默认 false）"},
                    "cdpEndpoint": {
                        "type": "string",
                        "description": "已有浏览器的 CDP 地址（仅 chromium，如 http://localhost:9222）"
                    },
                    "debugPort": {
                        "type": "integer",
                        "description": "以远程调试端口启动 chromium（不能与 cdpEndpoint 同时使用）"
                    },
                    "viewport": {
                        "type": "object",
                        "properties": {
                            "width": {"type": "integer"},
                            "height": {"type": "integer"}
                        },
                        "description": "视口大小"
                    },
                    "windowPosition": {
                        "type": "object",
                        "properties": {
                            "x": {"type": "integer"},
                            "y": {"type": "integer"}
                        },
                        "description": "窗口位置（仅非无头模式）"
                    }
                }
            }
        ),
        Tool(
            name="browser_close",
            description="关闭当前浏览器",
            inputSchema={
                "type": "object",
                "properties": {}
            }
        ),
        Tool(
            name="browser_navigate",
            description="导航到指定URL",
            inputSchema={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "目标URL"}
                },
                "required": ["url"]
            }
        ),
        Tool(
            name="browser_screenshot",
            description="截取当前页面或指定元素的截图",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "截图名称，重复使用会覆盖"},
                    "selector": {"type": "string", "description": "要截图的元素的 CSS 选择器（可选）"},
                    "fullPage": {"type": "boolean", "description": "是否截取整页（默认 false）", "default": False}
                },
                "required": ["name"]
            }
        ),
        Tool(
            name="browser_click",
            description="通过 CSS 选择器点击元素",
            inputSchema={
                "type": "object",
                "properties": {
                    "selector": {"type": "string", "description": "要点击的元素的 CSS 选择器"}
                },
                "required": ["selector"]
            }
        ),
        Tool(
            name="browser_click_text",
            description="通过文本内容点击元素",
            inputSchema={
                "type": "object",
                "properties": {
                    "text": {"type": "string", "description": "要点击的元素的文本内容"}
                },
                "required": ["text"]
            }
        ),
        Tool(
            name="browser_fill",
            description="逐字符填写输入框",
            inputSchema={
                "type": "object",
                "properties": {
                    "selector": {"type": "string", "description": "输入框的 CSS 选择器"},
                    "value": {"type": "string", "description": "要填写的值"}
                },
                "required": ["selector", "value"]
            }
        ),
        Tool(
            name="browser_select",
            description="通过 CSS 选择器在 select 元素中选择选项",
            inputSchema={
                "type": "object",
                "properties": {
                    "selector": {"type": "string", "description": "select 元素的 CSS 选择器"},
                    "value": {"type": "string", "description": "要选择的值"}
                },
                "required": ["selector", "value"]
            }
        ),
        Tool(
            name="browser_select_text",
            description="通过文本内容定位 select 元素并选择选项",
            inputSchema={
                "type": "object",
                "properties": {
                    "text": {"type": "string", "description": "select 元素的文本内容"},
                    "value": {"type": "string", "description": "要选择的值"}
                },
                "required": ["text", "value"]
            }
        ),
        Tool(
            name="browser_hover",
            description="通过 CSS 选择器悬停在元素上",
            inputSchema={
                "type": "object",
                "properties": {
                    "selector": {"type": "string", "description": "要悬停的元素的 CSS 选择器"}
                },
                "required": ["selector"]
            }
        ),
        Tool(
            name="browser_hover_text",
            description="通过文本内容悬停在元素上",
            inputSchema={
                "type": "object",
                "properties": {
                    "text": {"type": "string", "description": "要悬停的元素的文本内容"}
                },
                "required": ["text"]
            }
        ),
        Tool(
            name="browser_evaluate",
            description="在页面中执行 JavaScript，返回结果和执行期间的 console 输出",
            inputSchema={
                "type": "object",
                "properties": {
                    "script": {"type": "string", "description": "要执行的 JavaScript 代码"}
                },
                "required": ["script"]
            }
        ),
        Tool(
            name="browser_get_logs",
            description="查询捕获的控制台日志和网络请求，支持过滤、分页和清空",
            inputSchema={
                "type": "object",
                "properties": {
                    "logTypes": {
                        "type": "array",
                        "items": {"type": "string", "enum": list(LOG_KINDS)},
                        "description": "要查询的日志类型（默认全部）"
                    },
                    "clear": {"type": "boolean", "description": "返回结果后清空所选日志", "default": False},
                    "limit": {
                        "type": "integer",
                        "description": f"每种日志最多返回的条数，最新在前（默认 {DEFAULT_LOG_LIMIT}）",
                        "default": DEFAULT_LOG_LIMIT
                    },
                    "filter": {
                        "type": "object",
                        "description": "过滤条件，各条件之间为 AND",
                        "properties": {
                            "types": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "控制台消息类型（如 log, error, warning）"
                            },
                            "search": {"type": "string", "description": "控制台文本包含（不区分大小写）"},
                            "methods": {"type": "array", "items": {"type": "string"}, "description": "HTTP 方法"},
                            "statusCodes": {"type": "array", "items": {"type": "integer"}, "description": "状态码"},
                            "statusRange": {
                                "type": "object",
                                "properties": {
                                    "min": {"type": "integer"},
                                    "max": {"type": "integer"}
                                },
                                "description": "状态码范围（闭区间）"
                            },
                            "urlPattern": {"type": "string", "description": "URL 正则表达式"},
                            "resourceTypes": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "资源类型（如 document, xhr, fetch, script）"
                            },
                            "failedOnly": {"type": "boolean", "description": "只返回失败的请求"}
                        }
                    }
                }
            }
        ),
    ]


def _require_str(arguments: Dict[str, Any], key: str) -> str:
    value = arguments.get(key)
    if value is None:
        raise ValidationError(f"Missing required argument: {key}")
    if not isinstance(value, str):
        raise ValidationError(f"Argument {key} must be a string")
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


# 生命周期工具（不需要活动会话）
async def _launch(manager: PlaywrightBrowserManager, arguments: Dict[str, Any]) -> ToolResult:
    description = await manager.launch(
        browser_type=arguments.get("browserType"),
        headless=arguments.get("headless"),
        cdp_endpoint=arguments.get("cdpEndpoint"),
        debug_port=arguments.get("debugPort"),
        viewport=arguments.get("viewport"),
        window_position=arguments.get("windowPosition"),
    )
    return ToolResult.text(description)


async def _close(manager: PlaywrightBrowserManager, arguments: Dict[str, Any]) -> ToolResult:
    if not await manager.close():
        return ToolResult.text("No browser is currently open")
    return ToolResult.text("Browser closed")


LIFECYCLE_TOOLS: Dict[str, Callable[[PlaywrightBrowserManager, Dict[str, Any]], Awaitable[ToolResult]]] = {
    "browser_launch": _launch,
    "browser_close": _close,
}


# 页面工具（先确保会话可用）
PageTool = Callable[[ActionExecutor, Any, Dict[str, Any]], Awaitable[ActionResult]]

PAGE_TOOLS: Dict[str, PageTool] = {
    "browser_navigate": lambda ex, page, args: ex.navigate(page, _require_str(args, "url")),
    "browser_screenshot": lambda ex, page, args: ex.screenshot(
        page,
        _require_str(args, "name"),
        selector=args.get("selector") or None,
        full_page=_as_bool(args.get("fullPage", False)),
    ),
    "browser_click": lambda ex, page, args: ex.click(page, Target.selector(_require_str(args, "selector"))),
    "browser_click_text": lambda ex, page, args: ex.click(page, Target.text(_require_str(args, "text"))),
    "browser_fill": lambda ex, page, args: ex.fill(
        page, Target.selector(_require_str(args, "selector")), _require_str(args, "value")
    ),
    "browser_select": lambda ex, page, args: ex.select(
        page, Target.selector(_require_str(args, "selector")), _require_str(args, "value")
    ),
    "browser_select_text": lambda ex, page, args: ex.select(
        page, Target.text(_require_str(args, "text")), _require_str(args, "value")
    ),
    "browser_hover": lambda ex, page, args: ex.hover(page, Target.selector(_require_str(args, "selector"))),
    "browser_hover_text": lambda ex, page, args: ex.hover(page, Target.text(_require_str(args, "text"))),
    "browser_evaluate": lambda ex, page, args: ex.evaluate(page, _require_str(args, "script")),
}


async def _get_logs(manager: PlaywrightBrowserManager, arguments: Dict[str, Any]) -> ToolResult:
    result = manager.log_store.get_logs(
        kinds=arguments.get("logTypes"),
        filters=arguments.get("filter"),
        limit=arguments.get("limit", DEFAULT_LOG_LIMIT),
        clear=_as_bool(arguments.get("clear", False)),
    )
    return ToolResult.text(json.dumps(result, ensure_ascii=False, indent=2))


REQUIRED_ARGUMENTS: Dict[str, Tuple[str, ...]] = {
    tool.name: tuple(tool.inputSchema.get("required", ())) for tool in create_tools()
}


async def handle_tool_call(
    browser_manager: PlaywrightBrowserManager,
    name: str,
    arguments: Optional[Dict[str, Any]],
) -> ToolResult:
    """处理工具调用，所有结果和错误都转换为 ToolResult"""
    arguments = arguments or {}
    try:
        if name in LIFECYCLE_TOOLS:
            return await LIFECYCLE_TOOLS[name](browser_manager, arguments)

        if name not in PAGE_TOOLS and name != "browser_get_logs":
            return ToolResult.error(f"Unknown tool: {name}")

        # 必填参数缺失时不启动浏览器
        for key in REQUIRED_ARGUMENTS.get(name, ()):
            _require_str(arguments, key)
        page = await browser_manager.ensure_active()

        if name == "browser_get_logs":
            return await _get_logs(browser_manager, arguments)

        executor = ActionExecutor(browser_manager.screenshots)
        result = await PAGE_TOOLS[name](executor, page, arguments)
        return ToolResult.from_action(result)
    except BrowserToolError as e:
        logger.warning(f"工具 {name} 调用失败: {e}")
        return ToolResult.error(str(e))
    except Exception as e:
        logger.error(f"工具 {name} 调用异常: {e}", exc_info=True)
        return ToolResult.error(f"Tool {name} failed: {e}")
