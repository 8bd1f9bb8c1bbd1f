"""
失败结果到 HTTP 错误的映射
"""
from typing import Any, Dict

from fastapi import HTTPException, status

from kolab.models.schemas import BookingResponse
from kolab.services.results import (
    CODE_CONFIRM_TIMEOUT,
    CODE_CONFLICT,
    CODE_NOT_FOUND,
    CODE_STORE_ERROR,
    CODE_VALIDATION,
    OperationResult,
)

STATUS_BY_CODE = {
    CODE_VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    CODE_CONFLICT: status.HTTP_409_CONFLICT,
    CODE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    CODE_CONFIRM_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    CODE_STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def failure_detail(result: OperationResult) -> Dict[str, Any]:
    detail: Dict[str, Any] = {"code": result.code, "message": result.message}
    conflicting = (result.extra or {}).get("conflicting_booking")
    if conflicting is not None:
        detail["conflicting_booking"] = BookingResponse.model_validate(conflicting).model_dump(mode="json")
    return detail


def raise_for_failure(result: OperationResult) -> None:
    """结果失败时抛出 HTTPException"""
    if result.ok:
        return
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(result.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=failure_detail(result),
    )
