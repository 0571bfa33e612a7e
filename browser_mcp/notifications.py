"""
资源变更通知

捕获回调在请求上下文之外触发，这里保存最近一次请求所在的 MCP 会话，
并把通知投递到正在运行的事件循环上。没有会话或事件循环时直接丢弃。
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class ResourceNotifier:
    """把 "updated" / "list changed" 信号转发给客户端"""

    def __init__(self):
        self._session: Optional[Any] = None
        self._tasks: Set[asyncio.Task] = set()

    def bind(self, session: Any) -> None:
        self._session = session

    def unbind(self) -> None:
        self._session = None

    def resource_updated(self, uri: str) -> None:
        self._schedule(lambda session: session.send_resource_updated(uri), f"resources/updated {uri}")

    def resource_list_changed(self) -> None:
        self._schedule(lambda session: session.send_resource_list_changed(), "resources/list_changed")

    def _schedule(self, send: Callable[[Any], Awaitable[None]], label: str) -> None:
        session = self._session
        if session is None:
            logger.debug(f"没有已连接的会话，丢弃通知: {label}")
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"没有运行中的事件循环，丢弃通知: {label}")
            return
        task = loop.create_task(self._send(send, session, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, send: Callable[[Any], Awaitable[None]], session: Any, label: str) -> None:
        try:
            await send(session)
        except Exception as e:
            logger.warning(f"发送通知失败 ({label}): {e}")
