"""
领域事件定义 (Domain Events)
服务在写入确认后发布，处理器通过 kolab_core 事件总线订阅
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Optional, Dict, Any, List


class EventType(str, Enum):
    """事件类型枚举"""
    # 预订相关
    BOOKING_CREATED = "booking.created"
    BOOKING_UPDATED = "booking.updated"
    BOOKING_DELETED = "booking.deleted"
    BOOKING_STATUS_CHANGED = "booking.status_changed"
    BOOKING_CHECKED_OUT = "booking.checked_out"

    # 客人相关
    GUEST_CREATED = "guest.created"
    GUEST_STATS_UPDATED = "guest.stats_updated"

    # 保洁相关
    ROOM_STATUS_CHANGED = "room.status_changed"
    ROOM_MARKED_CLEAN = "room.marked_clean"

    # 维修相关
    MAINTENANCE_ISSUE_CREATED = "maintenance.issue_created"
    MAINTENANCE_RECURRING_GENERATED = "maintenance.recurring_generated"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典（日期序列化为 ISO 字符串）"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
        return result


@dataclass
class BookingEventData(BaseEventData):
    """预订事件数据"""
    booking_id: str = ""
    room_id: str = ""
    guest_id: Optional[str] = None
    guest_name: str = ""
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    status: str = ""
    previous_status: Optional[str] = None
    changed_by: Optional[str] = None


@dataclass
class GuestEventData(BaseEventData):
    """客人事件数据"""
    guest_id: str = ""
    full_name: str = ""
    booking_id: Optional[str] = None
    stay_count: int = 0
    lifetime_nights: int = 0


@dataclass
class RoomStatusEventData(BaseEventData):
    """房间保洁状态事件数据"""
    room_id: str = ""
    field: str = ""
    old_value: Any = None
    new_value: Any = None
    changed_by: Optional[str] = None


@dataclass
class MaintenanceEventData(BaseEventData):
    """维修事件数据"""
    issue_id: str = ""
    location_id: str = ""
    description: str = ""
    template_id: Optional[str] = None
    due_date: Optional[date] = None
    reported_by: Optional[str] = None


@dataclass
class RecurringRunData(BaseEventData):
    """一次周期维修检查的结果"""
    run_date: Optional[date] = None
    created_issue_ids: List[str] = field(default_factory=list)
    failed_task_ids: List[str] = field(default_factory=list)
