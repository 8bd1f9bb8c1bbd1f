"""
kolab_core/domain/records.py

领域记录类型 - 由外部文档存储快照构建的纯数据对象

外部协作方以普通映射（dict）交付快照，字段名可能是存储原始的
camelCase（checkIn、roomId）或 Python 风格的 snake_case，
from_mapping 两种都接受。
"""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from kolab_core.domain.dates import parse_date


# ============== 枚举定义 ==============

class BookingStatus(str, Enum):
    """预订生命周期状态"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"


class StayCategory(str, Enum):
    """入住类别：short (<7 晚), medium (7-30), long (31+)"""
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class BookingChannel(str, Enum):
    """预订渠道"""
    AIRBNB = "airbnb"
    DIRECT = "direct"
    COLIVING = "coliving"


class PaymentStatus(str, Enum):
    """付款状态（仅 direct 渠道有意义）"""
    PAID = "paid"
    UNPAID = "unpaid"


class HousekeepingStatus(str, Enum):
    """房间保洁状态"""
    CLEAN = "clean"
    DIRTY = "dirty"
    IN_PROGRESS = "in_progress"
    CHECKOUT_DIRTY = "checkout_dirty"


class IssueStatus(str, Enum):
    """维修问题状态"""
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

UNASSIGNED = "Unassigned"
DEFAULT_PRIORITY = 3


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """按顺序取第一个存在且非 None 的键"""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _number(value: Any, cast=float, default=0):
    try:
        return cast(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


# ============== 记录类型 ==============

@dataclass(frozen=True)
class Room:
    """房间参考数据，来自房源目录，不由预订推导"""
    id: str
    name: str
    type: str = ""
    property_id: str = ""
    property_name: str = ""


@dataclass
class Booking:
    """
    预订记录

    入住区间为半开区间 [check_in, check_out)。日期无法解析时为 None，
    下游纯函数对 None 一律视为"不匹配"。
    """

    id: Optional[str]
    room_id: Optional[str]
    guest_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    status: str = BookingStatus.CONFIRMED.value
    price: float = 0.0
    nightly_price: Optional[float] = None
    nights: int = 0
    stay_category: Optional[str] = None
    is_long_term: bool = False
    weekly_cleaning_day: Optional[str] = None
    early_check_in: bool = False
    channel: str = BookingChannel.AIRBNB.value
    payment_status: Optional[str] = None
    guest_id: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    @property
    def is_weekly_service_stay(self) -> bool:
        """中长住预订（享受每周保洁）"""
        return self.is_long_term or self.stay_category in (
            StayCategory.MEDIUM.value,
            StayCategory.LONG.value,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Booking":
        created_at = _pick(data, "created_at", "createdAt")
        updated_at = _pick(data, "updated_at", "updatedAt")
        return cls(
            id=_pick(data, "id"),
            room_id=_pick(data, "room_id", "roomId"),
            guest_name=_pick(data, "guest_name", "guestName", default=""),
            email=_pick(data, "email", "guest_email", "guestEmail"),
            phone=_pick(data, "phone", "guest_phone", "guestPhone"),
            check_in=parse_date(_pick(data, "check_in", "checkIn", "startDate")),
            check_out=parse_date(_pick(data, "check_out", "checkOut", "endDate")),
            status=_enum_value(_pick(data, "status", default=BookingStatus.CONFIRMED.value)),
            price=_number(_pick(data, "price"), float, 0.0),
            nightly_price=_pick(data, "nightly_price", "nightlyPrice"),
            nights=_number(_pick(data, "nights"), int, 0),
            stay_category=_enum_value(_pick(data, "stay_category", "stayCategory")),
            is_long_term=bool(_pick(data, "is_long_term", "isLongTerm", default=False)),
            weekly_cleaning_day=_pick(data, "weekly_cleaning_day", "weeklyCleaningDay"),
            early_check_in=bool(_pick(data, "early_check_in", "earlyCheckIn", default=False)),
            channel=_enum_value(_pick(data, "channel", default=BookingChannel.AIRBNB.value)),
            payment_status=_enum_value(_pick(data, "payment_status", "paymentStatus")),
            guest_id=_pick(data, "guest_id", "guestId"),
            notes=_pick(data, "notes", default=""),
            created_at=created_at if isinstance(created_at, datetime) else _parse_timestamp(created_at),
            updated_at=updated_at if isinstance(updated_at, datetime) else _parse_timestamp(updated_at),
        )


@dataclass
class RoomStatusRecord:
    """
    房间当前保洁状态（按房间 id 存储）

    priority 为人工覆盖的优先级；None 表示未覆盖，由推导器计算。
    """

    room_id: str
    status: str = HousekeepingStatus.CLEAN.value
    assigned_staff: str = UNASSIGNED
    priority: Optional[int] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def clean_baseline(cls, room_id: str, updated_at: Optional[datetime] = None) -> "RoomStatusRecord":
        """"标记已清洁"后的标准基线"""
        return cls(
            room_id=room_id,
            status=HousekeepingStatus.CLEAN.value,
            assigned_staff=UNASSIGNED,
            priority=DEFAULT_PRIORITY,
            updated_at=updated_at,
        )

    @classmethod
    def from_mapping(cls, room_id: str, data: Mapping[str, Any]) -> "RoomStatusRecord":
        priority = _pick(data, "priority")
        return cls(
            room_id=room_id,
            status=_enum_value(_pick(data, "status", default=HousekeepingStatus.CLEAN.value)),
            assigned_staff=_pick(data, "assigned_staff", "assignedStaff", default=UNASSIGNED),
            priority=_number(priority, int, None),
            updated_at=_parse_timestamp(_pick(data, "updated_at", "updatedAt")),
        )


@dataclass
class MaintenanceIssue:
    """维修问题"""
    id: Optional[str]
    location_id: str
    description: str
    status: str = IssueStatus.OPEN.value
    assigned_staff: str = UNASSIGNED
    template_id: Optional[str] = None
    is_recurring: bool = False
    location_name: Optional[str] = None
    property_name: Optional[str] = None
    due_date: Optional[date] = None
    reported_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status != IssueStatus.COMPLETED.value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MaintenanceIssue":
        return cls(
            id=_pick(data, "id"),
            location_id=_pick(data, "location_id", "locationId", default=""),
            description=_pick(data, "description", default=""),
            status=_enum_value(_pick(data, "status", default=IssueStatus.OPEN.value)),
            assigned_staff=_pick(data, "assigned_staff", "assignedStaff", default=UNASSIGNED),
            template_id=_pick(data, "template_id", "templateId"),
            is_recurring=bool(_pick(data, "is_recurring", "isRecurring", default=False)),
            location_name=_pick(data, "location_name", "locationName"),
            property_name=_pick(data, "property_name", "propertyName"),
            due_date=parse_date(_pick(data, "due_date", "dueDate")),
            reported_at=_parse_timestamp(_pick(data, "reported_at", "reportedAt")),
            updated_at=_parse_timestamp(_pick(data, "updated_at", "updatedAt")),
        )


@dataclass
class RecurringTask:
    """周期维修模板，目前仅支持 monthly"""
    id: str
    description: str
    location_id: str
    frequency: str = "monthly"
    next_due: Optional[date] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RecurringTask":
        return cls(
            id=_pick(data, "id"),
            description=_pick(data, "description", default=""),
            location_id=_pick(data, "location_id", "locationId", default=""),
            frequency=_pick(data, "frequency", default="monthly"),
            next_due=parse_date(_pick(data, "next_due", "nextDue")),
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def bookings_from_mappings(items) -> list:
    """把快照中的映射/记录统一转换为 Booking 列表"""
    result = []
    for item in items or []:
        if item is None:
            continue
        result.append(item if isinstance(item, Booking) else Booking.from_mapping(item))
    return result


def room_statuses_from_mapping(statuses: Optional[Mapping[str, Any]]) -> Dict[str, RoomStatusRecord]:
    """把 {room_id: 状态映射} 快照统一转换为 RoomStatusRecord 字典"""
    result: Dict[str, RoomStatusRecord] = {}
    for room_id, value in (statuses or {}).items():
        if isinstance(value, RoomStatusRecord):
            result[room_id] = value
        elif isinstance(value, Mapping):
            result[room_id] = RoomStatusRecord.from_mapping(room_id, value)
    return result


__all__ = [
    "BookingStatus",
    "StayCategory",
    "BookingChannel",
    "PaymentStatus",
    "HousekeepingStatus",
    "IssueStatus",
    "WEEKDAY_KEYS",
    "UNASSIGNED",
    "DEFAULT_PRIORITY",
    "Room",
    "Booking",
    "RoomStatusRecord",
    "MaintenanceIssue",
    "RecurringTask",
    "bookings_from_mappings",
    "room_statuses_from_mapping",
]
