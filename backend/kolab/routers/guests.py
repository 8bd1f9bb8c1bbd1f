"""
客人路由 - 客人档案、解析与回头客预览
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from kolab.database import get_db
from kolab.models.schemas import GuestLookupRequest, GuestResolutionResponse, GuestResponse, GuestUpdate
from kolab.routers.errors import raise_for_failure
from kolab.services.guest_service import GuestService

router = APIRouter(prefix="/guests", tags=["客人"])


@router.get("", response_model=List[GuestResponse])
def list_guests(
    search: Optional[str] = None,
    limit: int = 200,
    db: Session = Depends(get_db),
):
    """客人列表"""
    return GuestService(db).list_guests(search=search, limit=limit)


@router.post("/resolve", response_model=GuestResolutionResponse)
def resolve_guest(data: GuestLookupRequest, db: Session = Depends(get_db)):
    """为预订草稿解析客人（命中则补齐联系方式，否则新建）"""
    draft = {
        "guest_name": data.guest_name or "",
        "email": data.email,
        "phone": data.phone,
        "channel": data.channel.value if data.channel else None,
        "check_in": data.check_in,
    }
    result = GuestService(db).resolve_guest_for_booking(draft, allow_name_match=data.allow_name_match)
    raise_for_failure(result)
    return result.data.to_dict()


@router.post("/preview", response_model=Optional[GuestResolutionResponse])
def preview_guest(data: GuestLookupRequest, db: Session = Depends(get_db)):
    """只读预览：是否已有客人、是否回头客；无匹配返回 null"""
    result = GuestService(db).preview_returning_guest(
        email=data.email,
        phone=data.phone,
        name=data.guest_name,
        allow_name_match=data.allow_name_match,
        check_in=data.check_in,
    )
    raise_for_failure(result)
    return result.data.to_dict() if result.data else None


@router.get("/{guest_id}", response_model=GuestResponse)
def get_guest(guest_id: str, db: Session = Depends(get_db)):
    """获取客人详情"""
    guest = GuestService(db).get_guest(guest_id)
    if not guest:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Guest not found")
    return guest


@router.patch("/{guest_id}", response_model=GuestResponse)
def update_guest(guest_id: str, data: GuestUpdate, db: Session = Depends(get_db)):
    """更新标签、备注、状态"""
    result = GuestService(db).update_guest(guest_id, data.model_dump(exclude_unset=True))
    raise_for_failure(result)
    return result.data
