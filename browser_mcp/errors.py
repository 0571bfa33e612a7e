"""
异常定义
"""


class BrowserToolError(Exception):
    """浏览器工具异常基类"""


class ValidationError(BrowserToolError, ValueError):
    """参数校验失败，在修改任何状态之前抛出"""


class LaunchError(BrowserToolError):
    """启动或连接浏览器失败，抛出时会话已处于关闭状态"""


class ResourceNotFound(BrowserToolError, LookupError):
    """资源不存在"""

    def __init__(self, uri: str):
        super().__init__(f"Resource not found: {uri}")
        self.uri = uri


class ToolCallFailed(BrowserToolError):
    """工具返回失败结果，由 MCP 层转换为 isError 响应"""
