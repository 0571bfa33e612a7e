"""
数据模型定义
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from mcp.types import ImageContent, TextContent
from playwright.async_api import Browser, BrowserContext, Page


class BrowserType(str, Enum):
    """浏览器引擎类型"""
    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class ConnectionMode(str, Enum):
    """会话的建立方式"""
    LAUNCHED = "launched"
    CDP = "cdp"


class NetworkPhase(str, Enum):
    """网络事件阶段"""
    REQUEST = "request"
    RESPONSE = "response"
    FAILED = "failed"


@dataclass
class BrowserSession:
    """当前受管的浏览器会话（browser + context + page）"""
    browser: Browser
    context: BrowserContext
    page: Page
    browser_type: BrowserType = BrowserType.CHROMIUM
    connection_mode: ConnectionMode = ConnectionMode.LAUNCHED
    headless: bool = False
    cdp_endpoint: Optional[str] = None
    debug_port: Optional[int] = None
    launched_at: float = field(default_factory=time.time)

    def describe(self) -> str:
        if self.connection_mode == ConnectionMode.CDP:
            return f"Connected to browser via CDP at {self.cdp_endpoint}"
        text = f"Launched {self.browser_type.value} (headless: {str(self.headless).lower()})"
        if self.debug_port is not None:
            text += f" with remote debugging on port {self.debug_port}"
        return text


@dataclass(frozen=True)
class ConsoleLogEntry:
    """控制台消息"""
    timestamp: float
    type: str
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.type,
            "text": self.text,
        }

    def render(self) -> str:
        return f"[{self.type}] {self.text}"


@dataclass(frozen=True)
class NetworkEvent:
    """网络事件，同一次请求的各阶段共享 id"""
    id: str
    timestamp: float
    phase: NetworkPhase
    url: str
    method: str
    resource_type: str = ""
    status: Optional[int] = None
    status_text: Optional[str] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "phase": self.phase.value,
            "url": self.url,
            "method": self.method,
            "resource_type": self.resource_type,
        }
        if self.status is not None:
            data["status"] = self.status
            data["status_text"] = self.status_text or ""
        if self.duration_ms is not None:
            data["duration_ms"] = self.duration_ms
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ActionResult:
    """单个动作的执行结果，失败不会以异常形式抛出"""
    ok: bool
    text: str
    image: Optional[str] = None

    @classmethod
    def success(cls, text: str, image: Optional[str] = None) -> "ActionResult":
        return cls(ok=True, text=text, image=image)

    @classmethod
    def failure(cls, text: str) -> "ActionResult":
        return cls(ok=False, text=text)


ContentPart = Union[TextContent, ImageContent]


@dataclass
class ToolResult:
    """工具调用的统一返回结构"""
    content: List[ContentPart] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResult":
        return cls(content=[TextContent(type="text", text=text)], is_error=is_error)

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls.text(text, is_error=True)

    @classmethod
    def from_action(cls, result: ActionResult) -> "ToolResult":
        content: List[ContentPart] = [TextContent(type="text", text=result.text)]
        if result.image is not None:
            content.append(ImageContent(type="image", data=result.image, mimeType="image/png"))
        return cls(content=content, is_error=not result.ok)

    @property
    def message(self) -> str:
        """所有文本片段拼接后的内容"""
        return "\n".join(part.text for part in self.content if isinstance(part, TextContent))
