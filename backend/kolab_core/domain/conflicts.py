"""
kolab_core/domain/conflicts.py

预订冲突检测 - 半开区间 [check_in, check_out) 的重叠判断

同一天退房与入住（前一位客人的 check_out 等于后一位的 check_in）不算冲突。
纯函数，无副作用；诊断日志由调用方记录。
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Union

from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import format_date, parse_date
from kolab_core.domain.records import Booking, bookings_from_mappings
from kolab_core.domain.stays import INVALID_DATE_ORDER_REASON, MISSING_DATES_REASON


@dataclass
class ConflictResult:
    """
    冲突检测结果

    Attributes:
        conflict: 是否拒绝
        reason: 拒绝原因（可直接展示）
        conflicting_booking: 第一个重叠的已有预订
    """

    conflict: bool
    reason: Optional[str] = None
    conflicting_booking: Optional[Booking] = None

    def __bool__(self) -> bool:
        return self.conflict


def conflict_reason(booking: Booking) -> str:
    return (
        f"Room is booked by {booking.guest_name} from "
        f"{format_date(booking.check_in)} to {format_date(booking.check_out)}."
    )


def intervals_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """半开区间相交"""
    return a_start < b_end and a_end > b_start


def check_conflict(
    candidate: Union[Booking, Mapping[str, Any]],
    existing_bookings: Iterable[Union[Booking, Mapping[str, Any]]],
    exclude_id: Optional[str] = None,
) -> ConflictResult:
    """
    检查候选预订与已有预订是否冲突

    Args:
        candidate: 候选预订（需 room_id、check_in、check_out）
        existing_bookings: 已有预订（按输入顺序扫描）
        exclude_id: 正在编辑的预订 ID，不与自身比较

    Returns:
        ConflictResult；日期无法解析时按冲突处理
    """
    booking = candidate if isinstance(candidate, Booking) else Booking.from_mapping(candidate)
    check_in, check_out = booking.check_in, booking.check_out

    if check_in is None or check_out is None:
        return ConflictResult(conflict=True, reason=MISSING_DATES_REASON)
    if check_in >= check_out:
        return ConflictResult(conflict=True, reason=INVALID_DATE_ORDER_REASON)

    for existing in bookings_from_mappings(existing_bookings):
        if existing.room_id != booking.room_id:
            continue
        if exclude_id is not None and existing.id == exclude_id:
            continue
        if existing.is_cancelled:
            continue
        if existing.check_in is None or existing.check_out is None:
            continue
        if intervals_overlap(check_in, check_out, existing.check_in, existing.check_out):
            return ConflictResult(
                conflict=True,
                reason=conflict_reason(existing),
                conflicting_booking=existing,
            )

    return ConflictResult(conflict=False)


# ============== 房间可用性 ==============

OCCUPIED_LABEL = "Occupied"
FUTURE_BOOKINGS_LABEL = "Future Bookings"
OPEN_LABEL = "Open"


@dataclass
class RoomOption:
    """预订表单中的房间选项"""

    room_id: str
    name: str
    type: str
    property_id: str
    property_name: str
    display_status: str
    is_occupied: bool

    @property
    def label(self) -> str:
        return f"{self.name} ({self.display_status})"


def room_options(
    catalog: PropertyCatalog,
    bookings: Iterable[Union[Booking, Mapping[str, Any]]],
    today: Any,
    editing_id: Optional[str] = None,
) -> List[RoomOption]:
    """
    按目录顺序列出房间，并标注今日占用情况

    - Occupied: 今日有在住预订（正在编辑的预订除外）
    - Future Bookings: 今日空闲但有未取消的预订
    - Open: 无任何未取消预订
    """
    day = parse_date(today)
    by_room = {}
    for booking in bookings_from_mappings(bookings):
        if booking.is_cancelled or not booking.room_id:
            continue
        by_room.setdefault(booking.room_id, []).append(booking)

    options = []
    for room in catalog.rooms:
        room_bookings = by_room.get(room.id, [])
        occupied = day is not None and any(
            b.check_in is not None and b.check_out is not None
            and b.check_in <= day < b.check_out
            and (editing_id is None or b.id != editing_id)
            for b in room_bookings
        )
        if occupied:
            status = OCCUPIED_LABEL
        elif room_bookings:
            status = FUTURE_BOOKINGS_LABEL
        else:
            status = OPEN_LABEL
        options.append(RoomOption(
            room_id=room.id,
            name=room.name,
            type=room.type,
            property_id=room.property_id,
            property_name=room.property_name,
            display_status=status,
            is_occupied=occupied,
        ))
    return options


__all__ = [
    "ConflictResult",
    "conflict_reason",
    "intervals_overlap",
    "check_conflict",
    "RoomOption",
    "room_options",
]
