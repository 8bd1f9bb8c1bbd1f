"""
kolab_core/sync - 乐观本地状态与存储确认的协调
"""
from kolab_core.sync.confirm import poll_until
from kolab_core.sync.optimistic import PendingChange, OptimisticCollection

__all__ = ["poll_until", "PendingChange", "OptimisticCollection"]
