"""
截图存储

截图以调用方给出的名字为 key，重复使用同一个名字会覆盖旧的截图。
关闭会话不会清空截图。
"""
import logging
import threading
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class ScreenshotStore:
    """名字 -> base64 编码的 PNG"""

    def __init__(self, on_change: Optional[Callable[[], None]] = None):
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.on_change = on_change

    def put(self, name: str, data: str) -> None:
        with self._lock:
            replaced = name in self._items
            self._items[name] = data
        logger.info(f"截图已保存: {name}{' (覆盖)' if replaced else ''}")
        if self.on_change is not None:
            try:
                self.on_change()
            except Exception as e:
                logger.debug(f"截图列表通知失败: {e}")

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            return self._items.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
