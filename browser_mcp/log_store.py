"""
控制台与网络事件的捕获和查询

每个页面安装一次监听（启动/连接时，以及页面被重建时）。
控制台消息和网络事件分别写入两个环形缓冲区；网络事件的各阶段通过
(url, method) 关联。同一个 key 上并发的请求会覆盖彼此的关联记录，
时长只是尽力而为的结果。
"""
import logging
import re
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Tuple

from .config import CONSOLE_LOG_CAPACITY, DEFAULT_LOG_LIMIT, NETWORK_LOG_CAPACITY
from .errors import ValidationError
from .models import ConsoleLogEntry, NetworkEvent, NetworkPhase
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)

LOG_KINDS = ("console", "network")

CorrelationKey = Tuple[str, str]


@dataclass
class ConsoleLogFilter:
    """控制台日志过滤条件，各条件之间为 AND"""
    types: Optional[List[str]] = None
    search: Optional[str] = None

    def matches(self, entry: ConsoleLogEntry) -> bool:
        if self.types is not None and entry.type not in self.types:
            return False
        if self.search and self.search.lower() not in entry.text.lower():
            return False
        return True


@dataclass
class NetworkLogFilter:
    """网络日志过滤条件，各条件之间为 AND"""
    methods: Optional[List[str]] = None
    status_codes: Optional[List[int]] = None
    status_min: Optional[int] = None
    status_max: Optional[int] = None
    url_pattern: Optional[Pattern[str]] = None
    resource_types: Optional[List[str]] = None
    failed_only: bool = False

    @property
    def _has_status_clause(self) -> bool:
        return self.status_codes is not None or self.status_min is not None or self.status_max is not None

    def matches(self, event: NetworkEvent) -> bool:
        if self.failed_only and event.phase != NetworkPhase.FAILED:
            return False
        if self.methods is not None and event.method.upper() not in self.methods:
            return False
        if self._has_status_clause:
            if event.status is None:
                return False
            if self.status_codes is not None and event.status not in self.status_codes:
                return False
            if self.status_min is not None and event.status < self.status_min:
                return False
            if self.status_max is not None and event.status > self.status_max:
                return False
        if self.url_pattern is not None and not self.url_pattern.search(event.url):
            return False
        if self.resource_types is not None and event.resource_type not in self.resource_types:
            return False
        return True


def _string_list(value: Any, name: str) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"filter.{name} must be a list of strings")
    return list(value)


def _int_or_none(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise ValidationError(f"filter.{name} must be an integer")
    return int(value)


def parse_filters(raw: Optional[Dict[str, Any]]) -> Tuple[ConsoleLogFilter, NetworkLogFilter]:
    """把工具参数中的 filter 对象转换为两组过滤条件"""
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValidationError("filter must be an object")

    console_filter = ConsoleLogFilter(
        types=_string_list(raw.get("types"), "types"),
        search=raw.get("search") or None,
    )

    methods = _string_list(raw.get("methods"), "methods")
    status_codes = raw.get("statusCodes")
    if status_codes is not None:
        if not isinstance(status_codes, (list, tuple)):
            raise ValidationError("filter.statusCodes must be a list of integers")
        status_codes = [_int_or_none(code, "statusCodes") for code in status_codes]

    status_range = raw.get("statusRange") or {}
    if not isinstance(status_range, dict):
        raise ValidationError("filter.statusRange must be an object with min/max")

    url_pattern = None
    if raw.get("urlPattern"):
        try:
            url_pattern = re.compile(raw["urlPattern"])
        except (re.error, TypeError) as e:
            raise ValidationError(f"Invalid urlPattern {raw['urlPattern']!r}: {e}")

    network_filter = NetworkLogFilter(
        methods=[m.upper() for m in methods] if methods is not None else None,
        status_codes=status_codes,
        status_min=_int_or_none(status_range.get("min"), "statusRange.min"),
        status_max=_int_or_none(status_range.get("max"), "statusRange.max"),
        url_pattern=url_pattern,
        resource_types=_string_list(raw.get("resourceTypes"), "resourceTypes"),
        failed_only=bool(raw.get("failedOnly", False)),
    )
    return console_filter, network_filter


def _summarize(items: List[Any], matches: Callable[[Any], bool], limit: int) -> Dict[str, Any]:
    filtered = [item for item in items if matches(item)]
    recent = filtered[-limit:]
    recent.reverse()
    return {
        "total": len(items),
        "filtered": len(filtered),
        "entries": [item.to_dict() for item in recent],
    }


class EventLogStore:
    """控制台 / 网络事件的有界存储"""

    def __init__(
        self,
        console_capacity: int = CONSOLE_LOG_CAPACITY,
        network_capacity: int = NETWORK_LOG_CAPACITY,
        on_console_entry: Optional[Callable[[ConsoleLogEntry], None]] = None,
    ):
        self.console: RingBuffer[ConsoleLogEntry] = RingBuffer(console_capacity)
        self.network: RingBuffer[NetworkEvent] = RingBuffer(network_capacity)
        self.on_console_entry = on_console_entry
        self._pending: Dict[CorrelationKey, Tuple[str, float]] = {}
        self._pending_lock = threading.Lock()
        self._generation = 0
        self._attached: Optional[Tuple[Any, Dict[str, Callable[[Any], None]]]] = None

    # 页面监听
    def attach(self, page) -> None:
        """在页面上安装控制台和网络监听，旧页面的监听随之失效"""
        self.detach()
        self._generation += 1
        generation = self._generation

        def current() -> bool:
            return generation == self._generation

        def handle_console(msg):
            if current():
                self.record_console(msg.type, msg.text)

        def handle_request(request):
            if current():
                self.record_request(request.url, request.method, request.resource_type)

        def handle_response(response):
            if current():
                request = response.request
                self.record_response(
                    response.url,
                    request.method,
                    response.status,
                    response.status_text,
                    request.resource_type,
                )

        def handle_request_failed(request):
            if current():
                self.record_request_failed(
                    request.url,
                    request.method,
                    request.failure or "unknown error",
                    request.resource_type,
                )

        handlers = {
            "console": handle_console,
            "request": handle_request,
            "response": handle_response,
            "requestfailed": handle_request_failed,
        }
        for event, handler in handlers.items():
            page.on(event, handler)
        self._attached = (page, handlers)
        logger.debug(f"事件捕获已安装 (generation={generation})")

    def detach(self) -> None:
        """移除当前页面上的监听"""
        if self._attached is None:
            return
        page, handlers = self._attached
        self._attached = None
        self._generation += 1
        for event, handler in handlers.items():
            try:
                page.remove_listener(event, handler)
            except Exception as e:
                logger.debug(f"移除监听 {event} 失败: {e}")

    # 事件记录
    def record_console(self, type_: str, text: str) -> ConsoleLogEntry:
        entry = ConsoleLogEntry(timestamp=time.time(), type=type_, text=text)
        self.console.append(entry)
        if self.on_console_entry is not None:
            try:
                self.on_console_entry(entry)
            except Exception as e:
                logger.debug(f"控制台通知失败: {e}")
        return entry

    def record_request(self, url: str, method: str, resource_type: str = "") -> NetworkEvent:
        event_id = str(uuid.uuid4())
        with self._pending_lock:
            self._pending[(url, method)] = (event_id, time.monotonic())
        event = NetworkEvent(
            id=event_id,
            timestamp=time.time(),
            phase=NetworkPhase.REQUEST,
            url=url,
            method=method,
            resource_type=resource_type,
        )
        self.network.append(event)
        return event

    def record_response(
        self,
        url: str,
        method: str,
        status: int,
        status_text: str = "",
        resource_type: str = "",
    ) -> NetworkEvent:
        event_id, duration_ms = self._complete(url, method)
        event = NetworkEvent(
            id=event_id,
            timestamp=time.time(),
            phase=NetworkPhase.RESPONSE,
            url=url,
            method=method,
            resource_type=resource_type,
            status=status,
            status_text=status_text,
            duration_ms=duration_ms,
        )
        self.network.append(event)
        return event

    def record_request_failed(
        self,
        url: str,
        method: str,
        error: str,
        resource_type: str = "",
    ) -> NetworkEvent:
        event_id, duration_ms = self._complete(url, method)
        event = NetworkEvent(
            id=event_id,
            timestamp=time.time(),
            phase=NetworkPhase.FAILED,
            url=url,
            method=method,
            resource_type=resource_type,
            duration_ms=duration_ms,
            error=error,
        )
        self.network.append(event)
        return event

    def _complete(self, url: str, method: str) -> Tuple[str, Optional[float]]:
        with self._pending_lock:
            pending = self._pending.pop((url, method), None)
        if pending is None:
            return str(uuid.uuid4()), None
        event_id, started = pending
        return event_id, round(max(0.0, time.monotonic() - started) * 1000, 2)

    def is_pending(self, url: str, method: str) -> bool:
        with self._pending_lock:
            return (url, method) in self._pending

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    # 查询
    def get_logs(
        self,
        kinds: Optional[Iterable[str]] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = DEFAULT_LOG_LIMIT,
        clear: bool = False,
    ) -> Dict[str, Any]:
        """按类型查询日志，结果按最新在前排列；clear 在生成结果之后清空"""
        selected = self._select_kinds(kinds)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"limit must be a positive integer, got {limit!r}")
        console_filter, network_filter = parse_filters(filters)

        result: Dict[str, Any] = {}
        if "console" in selected:
            items = self.console.drain() if clear else self.console.snapshot()
            result["console"] = _summarize(items, console_filter.matches, limit)
        if "network" in selected:
            if clear:
                items = self.network.drain()
                self._clear_pending()
            else:
                items = self.network.snapshot()
            result["network"] = _summarize(items, network_filter.matches, limit)
        if clear:
            result["cleared"] = list(selected)
        return result

    def clear(self) -> None:
        """清空两个缓冲区以及未完成的关联记录"""
        self.console.clear()
        self.network.clear()
        self._clear_pending()

    def _clear_pending(self) -> None:
        with self._pending_lock:
            self._pending.clear()

    @staticmethod
    def _select_kinds(kinds: Optional[Iterable[str]]) -> List[str]:
        if kinds is None:
            return list(LOG_KINDS)
        if isinstance(kinds, str):
            kinds = [kinds]
        selected = list(dict.fromkeys(kinds))
        if not selected:
            raise ValidationError("logTypes must not be empty")
        unknown = [k for k in selected if k not in LOG_KINDS]
        if unknown:
            raise ValidationError(f"Unknown log type(s): {', '.join(map(str, unknown))}. Expected one of: console, network")
        return [k for k in LOG_KINDS if k in selected]

    def render_console(self) -> str:
        """控制台日志的纯文本形式，每行一条"""
        return "\n".join(entry.render() for entry in self.console.snapshot())
