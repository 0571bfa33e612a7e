"""
Browser MCP Server

模块结构：
- config: 配置常量
- models: 数据模型
- ring_buffer: 固定容量的环形缓冲区
- log_store: 控制台 / 网络事件捕获与查询
- browser_manager: 浏览器会话生命周期
- locators / actions: 元素定位与动作执行
- tools: MCP 工具定义与调用分发
- resources / notifications: 日志与截图资源
- server: MCP 服务器组装
"""

from .actions import ActionExecutor
from .artifacts import ScreenshotStore
from .browser_manager import PlaywrightBrowserManager
from .config import DEFAULT_HOST, DEFAULT_PORT
from .log_store import EventLogStore
from .models import BrowserSession, ToolResult
from .ring_buffer import RingBuffer
from .server import create_server, run_stdio
from .tools import create_tools, handle_tool_call

__all__ = [
    "ActionExecutor",
    "BrowserSession",
    "EventLogStore",
    "PlaywrightBrowserManager",
    "RingBuffer",
    "ScreenshotStore",
    "ToolResult",
    "create_server",
    "create_tools",
    "handle_tool_call",
    "run_stdio",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
]
