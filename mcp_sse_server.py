#!/usr/bin/env python3
"""
基于官方 MCP SDK 的浏览器自动化 SSE 服务器

项目结构：
- browser_mcp/
  ├── config.py            # 配置常量
  ├── models.py            # 数据模型
  ├── log_store.py         # 控制台 / 网络事件捕获
  ├── browser_manager.py   # 浏览器会话管理
  ├── actions.py           # 页面动作执行
  ├── tools.py             # MCP 工具定义
  └── server.py            # MCP 服务器组装
"""
import contextlib
import json
import logging

from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from browser_mcp import DEFAULT_HOST, DEFAULT_PORT, PlaywrightBrowserManager, create_server
from browser_mcp.config import SERVER_NAME, SERVER_VERSION
from browser_mcp.server import initialization_options

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# 全局浏览器管理器实例
browser_manager = PlaywrightBrowserManager()

# 创建 MCP 服务器
app = create_server(browser_manager)

# 创建 SSE 传输
sse_transport = SseServerTransport("/messages/")


# SSE 连接处理器
async def handle_sse(request):
    """处理 SSE 连接"""
    logger.info(f"收到 SSE 连接请求: {request.method} {request.url}")

    try:
        async with sse_transport.connect_sse(
            request.scope, request.receive, request._send
        ) as streams:
            await app.run(streams[0], streams[1], initialization_options(app))
        logger.info("MCP 会话已结束")
    except Exception as e:
        logger.error(f"SSE 连接错误: {e}", exc_info=True)
        return Response(
            content=json.dumps({"error": str(e)}),
            status_code=500,
            media_type="application/json"
        )
    return Response()


async def health_check(request):
    """健康检查"""
    return JSONResponse({
        "status": "healthy",
        "service": SERVER_NAME,
        "version": SERVER_VERSION,
        "browser_active": browser_manager.is_active,
    })


@contextlib.asynccontextmanager
async def lifespan(_app):
    yield
    logger.info("正在关闭浏览器...")
    await browser_manager.stop()


# 创建 Starlette 应用
starlette_app = Starlette(
    routes=[
        Route("/sse", endpoint=handle_sse, methods=["GET"]),
        Route("/mcp", endpoint=handle_sse, methods=["GET"]),
        Mount("/messages/", app=sse_transport.handle_post_message),
        Route("/health", endpoint=health_check, methods=["GET"]),
    ],
    lifespan=lifespan,
)


def main():
    """启动 SSE 服务器"""
    import uvicorn

    host = DEFAULT_HOST
    port = DEFAULT_PORT
    display_host = host if host != "0.0.0.0" else "localhost"

    logger.info(f"{SERVER_NAME} {SERVER_VERSION}")
    logger.info(f"SSE 端点: http://{display_host}:{port}/sse")
    logger.info(f"消息端点: http://{display_host}:{port}/messages/")

    uvicorn.run(starlette_app, host=host, port=port)


if __name__ == "__main__":
    main()
