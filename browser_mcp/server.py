"""
MCP 服务器组装
注册工具、资源处理器，并把资源变更通知转发给当前连接的客户端
"""
import logging
from typing import Optional

from mcp.server import NotificationOptions, Server
from mcp.server.stdio import stdio_server

from .browser_manager import PlaywrightBrowserManager
from .config import SERVER_NAME, SERVER_VERSION
from .errors import ToolCallFailed
from .resources import list_resources, read_resource
from .tools import create_tools, handle_tool_call

logger = logging.getLogger(__name__)


def create_server(browser_manager: PlaywrightBrowserManager) -> Server:
    """创建 MCP 服务器并注册所有处理器"""
    app = Server(SERVER_NAME, version=SERVER_VERSION)

    def bind_notifier():
        try:
            browser_manager.notifier.bind(app.request_context.session)
        except LookupError:
            pass

    @app.list_tools()
    async def list_tools():
        """列出所有可用的浏览器工具"""
        return create_tools()

    @app.call_tool()
    async def call_tool(name: str, arguments: dict):
        """处理工具调用，失败结果以 isError 返回"""
        bind_notifier()
        result = await handle_tool_call(browser_manager, name, arguments)
        if result.is_error:
            raise ToolCallFailed(result.message)
        return result.content

    @app.list_resources()
    async def handle_list_resources():
        bind_notifier()
        return list_resources(browser_manager.log_store, browser_manager.screenshots)

    @app.read_resource()
    async def handle_read_resource(uri):
        bind_notifier()
        return [read_resource(str(uri), browser_manager.log_store, browser_manager.screenshots)]

    return app


def initialization_options(app: Server):
    return app.create_initialization_options(
        notification_options=NotificationOptions(resources_changed=True),
    )


async def run_stdio(browser_manager: Optional[PlaywrightBrowserManager] = None) -> None:
    """通过 stdio 运行服务器，退出时关闭浏览器"""
    manager = browser_manager or PlaywrightBrowserManager()
    app = create_server(manager)
    logger.info(f"{SERVER_NAME} {SERVER_VERSION} 通过 stdio 启动")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, initialization_options(app))
    finally:
        await manager.stop()
