"""
配置常量
"""

# 服务器配置
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3334

SERVER_NAME = "browser-mcp-server"
SERVER_VERSION = "0.1.0"

# 日志缓冲区容量
CONSOLE_LOG_CAPACITY = 500
NETWORK_LOG_CAPACITY = 1000
DEFAULT_LOG_LIMIT = 100

# 浏览器默认值
SUPPORTED_BROWSER_TYPES = ("chromium", "firefox", "webkit")
DEFAULT_BROWSER_TYPE = "chromium"
DEFAULT_HEADLESS = False

# 逐字符输入的间隔（毫秒）
FILL_KEY_DELAY_MS = 100

# 资源 URI
CONSOLE_LOG_URI = "console://logs"
SCREENSHOT_URI_SCHEME = "screenshot"
