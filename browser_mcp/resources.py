"""
资源列表与读取：控制台日志和已保存的截图
"""
import base64
from typing import List
from urllib.parse import unquote

from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.types import Resource

from .artifacts import ScreenshotStore
from .config import CONSOLE_LOG_URI, SCREENSHOT_URI_SCHEME
from .errors import ResourceNotFound
from .log_store import EventLogStore

SCREENSHOT_PREFIX = f"{SCREENSHOT_URI_SCHEME}://"


def screenshot_uri(name: str) -> str:
    return f"{SCREENSHOT_PREFIX}{name}"


def list_resources(log_store: EventLogStore, screenshots: ScreenshotStore) -> List[Resource]:
    """列出控制台日志资源和每一张截图"""
    resources = [
        Resource(uri=CONSOLE_LOG_URI, mimeType="text/plain", name="Browser console logs"),
    ]
    for name in screenshots.names():
        resources.append(
            Resource(uri=screenshot_uri(name), mimeType="image/png", name=f"Screenshot: {name}")
        )
    return resources


def read_resource(uri: str, log_store: EventLogStore, screenshots: ScreenshotStore) -> ReadResourceContents:
    """读取资源内容，未知 URI 抛出 ResourceNotFound"""
    # AnyUrl 序列化后可能带结尾的 / 或被百分号编码
    normalized = unquote(str(uri)).rstrip("/")

    if normalized == CONSOLE_LOG_URI:
        return ReadResourceContents(content=log_store.render_console(), mime_type="text/plain")

    if normalized.startswith(SCREENSHOT_PREFIX):
        data = screenshots.get(normalized[len(SCREENSHOT_PREFIX):])
        if data is not None:
            return ReadResourceContents(content=base64.b64decode(data), mime_type="image/png")

    raise ResourceNotFound(str(uri))
