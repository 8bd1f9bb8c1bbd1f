"""
kolab_core/sync/optimistic.py

乐观本地状态

写入存储前先把变更以"待确认"标记应用到本地视图；
存储确认后以确认后的记录替换，确认失败或超时则回滚到变更前的值并记录错误。
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

OP_UPSERT = "upsert"
OP_DELETE = "delete"

_MISSING = object()


@dataclass
class PendingChange(Generic[T]):
    """一条待确认的本地变更"""

    key: str
    op: str
    value: Optional[T]
    previous: Any


class OptimisticCollection(Generic[T]):
    """
    按 key 保存记录的本地视图

    Example:
        >>> local = OptimisticCollection()
        >>> local.apply_pending("b1", booking)
        >>> local.is_pending("b1")
        True
        >>> local.confirm("b1", stored_booking)
    """

    def __init__(self, initial: Optional[Dict[str, T]] = None):
        self._items: Dict[str, T] = dict(initial or {})
        self._pending: Dict[str, PendingChange[T]] = {}
        self._errors: Dict[str, str] = {}
        self._lock = threading.RLock()

    # ============== 读取 ==============

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            return self._items.get(key)

    def values(self) -> List[T]:
        with self._lock:
            return list(self._items.values())

    def as_dict(self) -> Dict[str, T]:
        with self._lock:
            return dict(self._items)

    def is_pending(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def pending_keys(self) -> List[str]:
        with self._lock:
            return list(self._pending.keys())

    def last_error(self, key: str) -> Optional[str]:
        with self._lock:
            return self._errors.get(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    # ============== 变更 ==============

    def apply_pending(self, key: str, value: Optional[T] = None, op: str = OP_UPSERT) -> PendingChange[T]:
        """
        应用待确认变更

        同一 key 连续变更时保留最早的 previous，回滚回到最后一次确认的状态。
        """
        with self._lock:
            existing = self._pending.get(key)
            previous = existing.previous if existing else self._items.get(key, _MISSING)
            change = PendingChange(key=key, op=op, value=value, previous=previous)
            self._pending[key] = change
            self._errors.pop(key, None)
            if op == OP_DELETE:
                self._items.pop(key, None)
            else:
                self._items[key] = value
            return change

    def confirm(self, key: str, confirmed: Any = _MISSING) -> None:
        """
        存储已确认

        Args:
            confirmed: 存储回读的记录；省略时保留本地值，None 表示已删除
        """
        with self._lock:
            change = self._pending.pop(key, None)
            if confirmed is _MISSING:
                if change is not None and change.op == OP_DELETE:
                    self._items.pop(key, None)
                return
            if confirmed is None:
                self._items.pop(key, None)
            else:
                self._items[key] = confirmed

    def rollback(self, key: str, error: Optional[str] = None) -> None:
        """确认失败：恢复变更前的值"""
        with self._lock:
            change = self._pending.pop(key, None)
            if change is None:
                return
            if change.previous is _MISSING:
                self._items.pop(key, None)
            else:
                self._items[key] = change.previous
            if error:
                self._errors[key] = error
        logger.warning(f"Rolled back optimistic {change.op} for {key}: {error or 'not confirmed'}")

    def replace_all(self, snapshot: Dict[str, T]) -> None:
        """用存储快照整体替换，仍待确认的本地变更继续覆盖在快照之上"""
        with self._lock:
            items = dict(snapshot)
            for key, change in self._pending.items():
                if change.op == OP_DELETE:
                    items.pop(key, None)
                else:
                    items[key] = change.value
            self._items = items


__all__ = ["OP_UPSERT", "OP_DELETE", "PendingChange", "OptimisticCollection"]
