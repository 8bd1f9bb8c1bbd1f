"""
kolab_core/sync/confirm.py

写入确认轮询：写入后反复回读，直到观察到预期状态或超时
"""
import logging
import time
from typing import Callable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.25


def poll_until(
    read: Callable[[], T],
    predicate: Callable[[T], bool],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Tuple[bool, Optional[T]]:
    """
    轮询回读

    Args:
        read: 回读函数
        predicate: 回读值满足时返回 True
        timeout: 超时秒数
        interval: 轮询间隔秒数
        clock / sleep: 可注入的时钟与休眠（测试用）

    Returns:
        (是否确认, 最后一次回读的值)；回读函数的异常直接向上抛出
    """
    deadline = clock() + timeout
    attempts = 0
    while True:
        attempts += 1
        value = read()
        if predicate(value):
            return True, value
        if clock() >= deadline:
            logger.warning(f"Write not confirmed after {attempts} reads ({timeout}s)")
            return False, value
        sleep(interval)
