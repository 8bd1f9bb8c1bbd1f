"""
kolab_core/engine - 核心引擎模块

- event_bus: 事件总线（发布/订阅）

使用方式:
    >>> from kolab_core.engine import event_bus, Event
"""

from kolab_core.engine.event_bus import (
    EventHandler,
    Event,
    PublishResult,
    EventBusStatistics,
    EventBus,
    event_bus,
)

__all__ = [
    "EventHandler",
    "Event",
    "PublishResult",
    "EventBusStatistics",
    "EventBus",
    "event_bus",
]
