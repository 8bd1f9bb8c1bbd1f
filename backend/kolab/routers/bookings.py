"""
预订路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from kolab.config import get_catalog
from kolab.database import get_db
from kolab.models.schemas import BookingCreate, BookingResponse, ConflictCheckRequest, ConflictCheckResponse
from kolab.routers.errors import raise_for_failure
from kolab.security.auth import get_acting_user
from kolab.services.booking_service import BookingService
from kolab_core.domain.catalog import PropertyCatalog

router = APIRouter(prefix="/bookings", tags=["预订"])


def _draft(data: BookingCreate) -> dict:
    return data.model_dump(mode="json", exclude={"allow_name_match"})


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    room_id: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """预订列表"""
    return BookingService(db, catalog).list_bookings(room_id=room_id, status=status)


@router.post("/check-conflict", response_model=ConflictCheckResponse)
def check_conflict(
    data: ConflictCheckRequest,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """保存前的冲突检查（只读）"""
    result = BookingService(db, catalog).check_conflict(
        {"room_id": data.room_id, "check_in": data.check_in, "check_out": data.check_out},
        exclude_id=data.exclude_id,
    )
    return ConflictCheckResponse(
        conflict=result.conflict,
        reason=result.reason,
        conflicting_booking=(
            BookingResponse.model_validate(result.conflicting_booking)
            if result.conflicting_booking is not None else None
        ),
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
    acting_user: Optional[str] = Depends(get_acting_user),
):
    """创建预订"""
    result = BookingService(db, catalog).save_booking(
        _draft(data), allow_name_match=data.allow_name_match, acting_user=acting_user,
    )
    raise_for_failure(result)
    return result.data


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """获取预订详情"""
    booking = BookingService(db, catalog).get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


@router.put("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: str,
    data: BookingCreate,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
    acting_user: Optional[str] = Depends(get_acting_user),
):
    """更新预订（含状态变更）"""
    result = BookingService(db, catalog).save_booking(
        _draft(data), existing_id=booking_id,
        allow_name_match=data.allow_name_match, acting_user=acting_user,
    )
    raise_for_failure(result)
    return result.data


@router.delete("/{booking_id}")
def delete_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
    acting_user: Optional[str] = Depends(get_acting_user),
):
    """删除预订"""
    result = BookingService(db, catalog).remove_booking(booking_id, acting_user=acting_user)
    raise_for_failure(result)
    return result.data
