"""
保洁路由 - 房态维护与每日保洁计划
"""
from datetime import date
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from kolab.config import get_catalog
from kolab.database import get_db
from kolab.models.schemas import (
    CleaningPlanResponse, DaySummaryResponse, HousekeepingFieldUpdate,
    RoomStatusResponse, RoomTaskResponse,
)
from kolab.routers.errors import raise_for_failure
from kolab.security.auth import get_acting_user
from kolab.services.housekeeping_service import HousekeepingService
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import parse_date

router = APIRouter(prefix="/housekeeping", tags=["保洁"])


def _target_date(value: Optional[str]) -> date:
    """查询参数 date，缺省为今天"""
    if value is None:
        return date.today()
    day = parse_date(value)
    if day is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "validation", "message": f"Invalid date '{value}'."},
        )
    return day


@router.get("/statuses", response_model=Dict[str, RoomStatusResponse])
def get_room_statuses(db: Session = Depends(get_db), catalog: PropertyCatalog = Depends(get_catalog)):
    """已存储的房态"""
    statuses = HousekeepingService(db, catalog).get_room_statuses()
    return {room_id: RoomStatusResponse.model_validate(record) for room_id, record in statuses.items()}


@router.patch("/rooms/{room_id}", response_model=RoomStatusResponse)
def update_room_field(
    room_id: str,
    data: HousekeepingFieldUpdate,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
    acting_user: Optional[str] = Depends(get_acting_user),
):
    """修改单个房态字段"""
    result = HousekeepingService(db, catalog).update_housekeeping_field(
        room_id, data.field, data.value, acting_user=acting_user,
    )
    raise_for_failure(result)
    return RoomStatusResponse.model_validate(result.data)


@router.post("/rooms/{room_id}/clean", response_model=RoomStatusResponse)
def mark_room_clean(
    room_id: str,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
    acting_user: Optional[str] = Depends(get_acting_user),
):
    """标记已清洁"""
    result = HousekeepingService(db, catalog).mark_room_clean(room_id, acting_user=acting_user)
    raise_for_failure(result)
    return RoomStatusResponse.model_validate(result.data)


@router.get("/tasks", response_model=List[RoomTaskResponse])
def get_cleaning_tasks(
    target_date: Optional[str] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """目标日需要清洁的房间（按优先级、房间名排序）"""
    tasks = HousekeepingService(db, catalog).cleaning_tasks(_target_date(target_date))
    return [t.to_dict() for t in tasks]


@router.get("/plan", response_model=CleaningPlanResponse)
def get_cleaning_plan(
    target_date: Optional[str] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """按 high / normal / low 分组的保洁计划"""
    plan = HousekeepingService(db, catalog).cleaning_plan(_target_date(target_date))
    return {
        "high": [t.to_dict() for t in plan.high],
        "normal": [t.to_dict() for t in plan.normal],
        "low": [t.to_dict() for t in plan.low],
    }


@router.get("/message", response_class=PlainTextResponse)
def get_cleaning_message(
    target_date: Optional[str] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """可复制分发给保洁人员的文本"""
    return HousekeepingService(db, catalog).cleaning_message(_target_date(target_date))


@router.get("/summary", response_model=DaySummaryResponse)
def get_day_summary(
    target_date: Optional[str] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """当日入住、退房与周保洁数量"""
    return HousekeepingService(db, catalog).day_summary(_target_date(target_date)).to_dict()
