"""
kolab_core/engine/event_bus.py

进程内事件总线 - 发布/订阅

服务在写入确认后发布领域事件（booking.created、room.marked_clean 等），
处理器同步执行，单个处理器失败不影响其他处理器，也不会传播给发布方。
订阅键支持 "booking.*" 形式的前缀通配。
"""
from typing import Callable, Dict, List, Any, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
import logging
import threading
import uuid

logger = logging.getLogger(__name__)

EventHandler = Callable[["Event"], None]


def _generate_event_id() -> str:
    return f"{datetime.now().strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None) or repr(handler)


@dataclass
class Event:
    """
    领域事件

    Attributes:
        event_type: 事件类型（如 "booking.created"）
        timestamp: 事件时间戳
        data: 事件数据（普通字典，可序列化）
        source: 触发来源（服务名）
        actor: 操作人（来自 X-Acting-User）
        event_id: 唯一事件ID
    """

    event_type: str
    timestamp: datetime
    data: Dict[str, Any]
    source: str = ""
    actor: Optional[str] = None
    event_id: str = field(default_factory=_generate_event_id)


@dataclass
class PublishResult:
    """
    事件发布结果

    Attributes:
        event_type: 事件类型
        subscriber_count: 匹配到的处理器数量
        success_count: 成功处理数
        failure_count: 失败数
        errors: (处理器名称, 异常) 列表
    """

    event_type: str
    subscriber_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    errors: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure_count == 0


@dataclass
class EventBusStatistics:
    """事件总线统计"""

    total_published: int = 0
    total_processed: int = 0
    total_failed: int = 0
    subscriber_count: Dict[str, int] = field(default_factory=dict)


class EventBus:
    """
    事件总线

    特性：
    - 精确与前缀通配订阅（"maintenance.*"）
    - 处理器异常隔离
    - 有界事件历史（调试用）
    - 统计信息

    Example:
        >>> bus = EventBus()
        >>> bus.subscribe("booking.checked_out", handler)
        >>> bus.publish(Event(event_type="booking.checked_out", timestamp=datetime.now(), data={}))

    Thread Safety:
        订阅管理与统计在锁内完成，处理器在锁外执行。
    """

    def __init__(self, history_size: int = 100):
        self._subscribers: Dict[str, List[EventHandler]] = {}
        self._history: deque = deque(maxlen=history_size)
        self._lock = threading.RLock()
        self._stats = EventBusStatistics()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """订阅事件；同一处理器重复订阅同一键只登记一次"""
        with self._lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.info(f"Handler {_handler_name(handler)} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.info(f"Handler {_handler_name(handler)} unsubscribed from {event_type}")

    def _matching_handlers(self, event_type: str) -> List[EventHandler]:
        matched: List[EventHandler] = []
        with self._lock:
            for key, handlers in self._subscribers.items():
                if key == event_type or (key.endswith(".*") and event_type.startswith(key[:-1])) or key == "*":
                    for handler in handlers:
                        if handler not in matched:
                            matched.append(handler)
        return matched

    def publish(self, event: Event) -> PublishResult:
        """
        发布事件（同步执行所有匹配的处理器）

        Args:
            event: 事件对象

        Returns:
            PublishResult
        """
        handlers = self._matching_handlers(event.event_type)
        with self._lock:
            self._history.append(event)
            self._stats.total_published += 1

        result = PublishResult(event_type=event.event_type, subscriber_count=len(handlers))
        if handlers:
            logger.debug(f"Publishing {event.event_type} to {len(handlers)} handlers")

        for handler in handlers:
            try:
                handler(event)
                result.success_count += 1
            except Exception as e:
                result.failure_count += 1
                result.errors.append((_handler_name(handler), e))
                logger.error(
                    f"Event handler {_handler_name(handler)} failed for {event.event_type}: {e}",
                    exc_info=True,
                )

        with self._lock:
            self._stats.total_processed += result.success_count
            self._stats.total_failed += result.failure_count
        return result

    def get_history(self, event_type: Optional[str] = None, limit: int = 50) -> List[Event]:
        """事件历史（最新的在前）"""
        with self._lock:
            history = list(self._history)
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return list(reversed(history))[:limit]

    def get_subscribers(self) -> Dict[str, List[str]]:
        with self._lock:
            return {key: [_handler_name(h) for h in handlers] for key, handlers in self._subscribers.items()}

    def get_statistics(self) -> EventBusStatistics:
        """统计信息副本"""
        with self._lock:
            return EventBusStatistics(
                total_published=self._stats.total_published,
                total_processed=self._stats.total_processed,
                total_failed=self._stats.total_failed,
                subscriber_count={key: len(h) for key, h in self._subscribers.items()},
            )

    def clear(self) -> None:
        """清空订阅、历史与统计（用于测试）"""
        with self._lock:
            self._subscribers.clear()
            self._history.clear()
            self._stats = EventBusStatistics()


# 全局事件总线实例
event_bus = EventBus()


__all__ = [
    "EventHandler",
    "Event",
    "PublishResult",
    "EventBusStatistics",
    "EventBus",
    "event_bus",
]
