"""
调度器接口 - 与调度框架无关的定时任务抽象
"""
from kolab_core.scheduler.base import (
    ISchedulerBackend,
    ManualSchedulerBackend,
    SchedulerRegistry,
    scheduler_registry,
)

__all__ = ["ISchedulerBackend", "ManualSchedulerBackend", "SchedulerRegistry", "scheduler_registry"]
