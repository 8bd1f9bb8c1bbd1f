"""
房间路由 - 目录中的房间、公共区域与可订状态
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from kolab.config import get_catalog
from kolab.database import get_db
from kolab.models.schemas import LocationResponse, RoomOptionResponse, RoomResponse
from kolab.services.booking_service import BookingService
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import parse_date

router = APIRouter(prefix="/rooms", tags=["房间"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(catalog: PropertyCatalog = Depends(get_catalog)):
    """目录中的全部房间（按目录顺序）"""
    return [RoomResponse.model_validate(r) for r in catalog.rooms]


@router.get("/locations", response_model=List[LocationResponse])
def list_locations(catalog: PropertyCatalog = Depends(get_catalog)):
    """房间与公共区域（维修问题的可选位置）"""
    return [LocationResponse.model_validate(loc) for loc in catalog.locations]


@router.get("/options", response_model=List[RoomOptionResponse])
def list_room_options(
    editing_id: Optional[str] = None,
    today: Optional[str] = None,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """预订表单的房间选项：Occupied / Future Bookings / Open"""
    service = BookingService(db, catalog)
    options = service.room_options(parse_date(today), editing_id)
    return [
        RoomOptionResponse(
            room_id=o.room_id,
            name=o.name,
            type=o.type,
            property_id=o.property_id,
            property_name=o.property_name,
            display_status=o.display_status,
            is_occupied=o.is_occupied,
            label=o.label,
        )
        for o in options
    ]


@router.get("/{room_id}/occupied-dates", response_model=List[str])
def get_occupied_dates(
    room_id: str,
    exclude_id: Optional[str] = None,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """房间被占用的夜晚（YYYY-MM-DD）"""
    if not catalog.has_room(room_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown room '{room_id}'.")
    return BookingService(db, catalog).occupied_dates(room_id, exclude_id)
