"""
APScheduler 调度后端 - 实现 kolab_core 层 ISchedulerBackend 接口
"""
import logging
from typing import Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from kolab_core.scheduler import ISchedulerBackend

logger = logging.getLogger(__name__)


class APSchedulerBackend(ISchedulerBackend):
    """基于 APScheduler 的调度后端"""

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None):
        self._scheduler = scheduler or BackgroundScheduler()

    @property
    def scheduler(self) -> BackgroundScheduler:
        return self._scheduler

    def start(self) -> None:
        """启动调度器"""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("APScheduler started")

    def shutdown(self) -> None:
        """关闭调度器"""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("APScheduler shut down")

    def add_cron_job(self, job_id: str, func: Callable[[], object], cron_expression: str) -> None:
        """添加 cron 定时任务"""
        self._scheduler.add_job(
            func,
            trigger=CronTrigger.from_crontab(cron_expression),
            id=job_id,
            replace_existing=True,
        )
        logger.info(f"Job added: {job_id} ({cron_expression})")

    def remove_job(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
            logger.info(f"Job removed: {job_id}")
        except JobLookupError:
            logger.warning(f"Job not found for removal: {job_id}")

    def get_jobs(self) -> List[Dict]:
        return [self._job_to_dict(j) for j in self._scheduler.get_jobs()]

    def trigger_job(self, job_id: str) -> object:
        """立即触发一次任务"""
        job = self._scheduler.get_job(job_id)
        if job is None:
            raise KeyError(f"Job not found: {job_id}")
        return job.func()

    @staticmethod
    def _job_to_dict(job) -> Dict:
        next_run_time = getattr(job, "next_run_time", None)
        return {
            "id": job.id,
            "name": job.name or job.id,
            "trigger": str(job.trigger),
            "next_run_time": next_run_time.isoformat() if next_run_time else None,
        }
