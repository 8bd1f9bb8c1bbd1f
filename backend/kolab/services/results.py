"""
操作结果 - 面向存储的服务操作的统一返回形状

错误分类：
- validation: 日期顺序非法、缺少必选项、非法状态转换、未知房间
- conflict: 与已有预订重叠
- not-found: 记录不存在
- confirm-timeout: 写入未在超时内被回读确认（可重试）
- store-error: 存储异常
"""
import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CODE_VALIDATION = "validation"
CODE_CONFLICT = "conflict"
CODE_NOT_FOUND = "not-found"
CODE_CONFIRM_TIMEOUT = "confirm-timeout"
CODE_STORE_ERROR = "store-error"
CODE_UNKNOWN = "unknown"

GENERIC_RETRY_MESSAGE = "Could not reach the data store. Please retry."


@dataclass
class OperationResult(Generic[T]):
    """服务操作结果"""

    ok: bool
    data: Optional[T] = None
    code: Optional[str] = None
    message: Optional[str] = None
    extra: Optional[dict] = None

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(cls, code: str, message: str, **extra: Any) -> "OperationResult":
        return cls(ok=False, code=code, message=message, extra=extra or None)

    @property
    def is_retryable(self) -> bool:
        return self.code in (CODE_CONFIRM_TIMEOUT, CODE_STORE_ERROR)

    def to_dict(self) -> dict:
        result = {"ok": self.ok, "code": self.code, "message": self.message}
        if self.extra:
            result.update(self.extra)
        return result


def normalize_error(err: Exception, context: str = "") -> OperationResult:
    """
    把异常规范化为失败结果并记录日志

    Args:
        err: 捕获的异常
        context: 日志上下文（操作名称）
    """
    logger.error(f"{context or 'Store operation'} failed: {err}", exc_info=True)
    code = getattr(err, "code", None)
    if isinstance(err, SQLAlchemyError) or not isinstance(code, str):
        code = CODE_STORE_ERROR if isinstance(err, SQLAlchemyError) else CODE_UNKNOWN
    message = GENERIC_RETRY_MESSAGE if code == CODE_STORE_ERROR else (str(err) or GENERIC_RETRY_MESSAGE)
    return OperationResult.failure(code, message)


__all__ = [
    "CODE_VALIDATION",
    "CODE_CONFLICT",
    "CODE_NOT_FOUND",
    "CODE_CONFIRM_TIMEOUT",
    "CODE_STORE_ERROR",
    "CODE_UNKNOWN",
    "OperationResult",
    "normalize_error",
]
