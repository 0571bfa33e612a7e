"""
固定容量的环形缓冲区

写满后再追加会先淘汰最旧的元素，存活元素保持到达顺序。
所有操作都在同一把锁内完成，捕获回调与查询/清空可以交错执行。
"""
import threading
from collections import deque
from typing import Callable, Deque, Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """有界、只追加的有序存储"""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._items: Deque[T] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, item: T) -> Optional[T]:
        """追加元素，返回被淘汰的元素（没有则为 None）"""
        with self._lock:
            evicted = None
            if len(self._items) == self._capacity:
                evicted = self._items.popleft()
            self._items.append(item)
            return evicted

    def snapshot(self) -> List[T]:
        """按到达顺序返回当前内容的副本"""
        with self._lock:
            return list(self._items)

    def select(self, predicate: Callable[[T], bool]) -> List[T]:
        with self._lock:
            return [item for item in self._items if predicate(item)]

    def drain(self) -> List[T]:
        """取出全部内容并清空"""
        with self._lock:
            items = list(self._items)
            self._items.clear()
            return items

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={self._capacity}, size={len(self)})"
