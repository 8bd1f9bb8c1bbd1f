"""
kolab_core/scheduler/base.py

调度器后端接口 - 与具体调度框架无关的定时任务抽象

kolab 应用层用 APScheduler 实现 ISchedulerBackend；
ManualSchedulerBackend 只登记任务、按需触发，用于测试与关闭调度的部署。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class ISchedulerBackend(ABC):
    """调度后端接口"""

    @abstractmethod
    def add_cron_job(self, job_id: str, func: Callable[[], object], cron_expression: str) -> None:
        """添加 cron 定时任务（同 id 覆盖）

        Args:
            job_id: 任务唯一标识
            func: 无参可调用对象
            cron_expression: 五段式 crontab 表达式
        """

    @abstractmethod
    def remove_job(self, job_id: str) -> None:
        """移除任务，不存在时忽略"""

    @abstractmethod
    def get_jobs(self) -> List[Dict]:
        """获取所有任务

        Returns:
            任务列表，每项至少包含 id, trigger, next_run_time
        """

    @abstractmethod
    def trigger_job(self, job_id: str) -> object:
        """立即执行一次任务，返回任务结果"""

    def start(self) -> None:
        """启动调度（默认无操作）"""

    def shutdown(self) -> None:
        """关闭调度（默认无操作）"""


@dataclass
class _ManualJob:
    job_id: str
    func: Callable[[], object]
    cron_expression: str


class ManualSchedulerBackend(ISchedulerBackend):
    """只登记不计时的调度后端"""

    def __init__(self):
        self._jobs: Dict[str, _ManualJob] = {}

    def add_cron_job(self, job_id: str, func: Callable[[], object], cron_expression: str) -> None:
        self._jobs[job_id] = _ManualJob(job_id, func, cron_expression)
        logger.info(f"Manual job registered: {job_id} ({cron_expression})")

    def remove_job(self, job_id: str) -> None:
        self._jobs.pop(job_id, None)

    def get_jobs(self) -> List[Dict]:
        return [
            {"id": job.job_id, "trigger": f"cron[{job.cron_expression}]", "next_run_time": None}
            for job in self._jobs.values()
        ]

    def trigger_job(self, job_id: str) -> object:
        job = self._jobs.get(job_id)
        if job is None:
            raise KeyError(f"Job not found: {job_id}")
        return job.func()


class SchedulerRegistry:
    """调度器注册表

    应用在 lifespan 中注册实现：
        scheduler_registry.set_backend(APSchedulerBackend())
    """

    def __init__(self):
        self._backend: Optional[ISchedulerBackend] = None

    def set_backend(self, backend: Optional[ISchedulerBackend]) -> None:
        self._backend = backend

    def get_backend(self) -> Optional[ISchedulerBackend]:
        return self._backend

    def clear(self) -> None:
        """清除后端（用于测试）"""
        self._backend = None


scheduler_registry = SchedulerRegistry()


__all__ = [
    "ISchedulerBackend",
    "ManualSchedulerBackend",
    "SchedulerRegistry",
    "scheduler_registry",
]
