"""
kolab_core/domain/housekeeping.py

保洁任务推导 - 由预订与人工房态推导指定日期需要清洁的房间

包含：
- build_cleaning_tasks: 每个需要清洁的房间一条 RoomTask，按优先级、房间名排序
- split_by_priority: 按任务标志分为 high / normal / low 三档（不读取数字优先级）
- format_cleaning_message: 按房产分组的可复制文本
- day_summary: 当日入住/退房/周保洁计数
"""
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import format_date, get_weekday_key, parse_date
from kolab_core.domain.records import (
    Booking,
    HousekeepingStatus,
    Room,
    RoomStatusRecord,
    UNASSIGNED,
    bookings_from_mappings,
    room_statuses_from_mapping,
)

PRIORITY_EARLY_ARRIVAL = 1
PRIORITY_ARRIVAL = 2
PRIORITY_DEFAULT = 3

LABEL_WEEKLY = "Weekly clean"
LABEL_CHECKOUT_EARLY = "Checkout + early check-in"
LABEL_CHECKOUT = "Checkout"
LABEL_EARLY_PREP = "Early check-in prep"
LABEL_ARRIVAL_PREP = "Arrival prep"
LABEL_DIRTY = "Dirty"

ALL_CLEAR = "All clear."


# ============== 数据类型 ==============

@dataclass
class RoomTask:
    """
    某房间在某日的保洁任务

    Attributes:
        status: 展示状态（退房日为 checkout_dirty，否则为存储的人工状态）
        stored_status: 存储的人工状态（默认 clean）
        priority: 生效优先级（人工覆盖优先），越小越紧急
        computed_priority: 推导出的优先级
    """

    room_id: str
    room_name: str
    room_type: str
    property_id: str
    property_name: str
    date: str
    status: str
    stored_status: str
    assigned_staff: str
    priority: int
    computed_priority: int
    has_priority_override: bool = False
    is_checkout: bool = False
    is_weekly_service_clean: bool = False
    is_arrival: bool = False
    has_early_check_in: bool = False
    checkout_booking_id: Optional[str] = None
    arrival_booking_id: Optional[str] = None
    weekly_booking_id: Optional[str] = None

    @property
    def needs_cleaning(self) -> bool:
        return (
            self.is_checkout
            or self.stored_status == HousekeepingStatus.DIRTY.value
            or self.is_weekly_service_clean
        )

    @property
    def is_early_check_in_prep(self) -> bool:
        return self.is_arrival and self.has_early_check_in

    @property
    def label(self) -> str:
        return task_label(self)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["needs_cleaning"] = self.needs_cleaning
        data["label"] = self.label
        return data


@dataclass
class CleaningPlan:
    """按展示档位划分的任务"""

    high: List[RoomTask] = field(default_factory=list)
    normal: List[RoomTask] = field(default_factory=list)
    low: List[RoomTask] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.high) + len(self.normal) + len(self.low)

    def all_tasks(self) -> List[RoomTask]:
        return self.high + self.normal + self.low


@dataclass
class DaySummary:
    date: str
    check_ins: int = 0
    early_check_ins: int = 0
    check_outs: int = 0
    weekly_cleans: int = 0

    @property
    def rooms_to_clean(self) -> int:
        return self.check_outs + self.weekly_cleans

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["rooms_to_clean"] = self.rooms_to_clean
        return data


# ============== 规则 ==============

def is_weekly_service_clean(booking: Booking, day: date, weekday: Optional[str]) -> bool:
    """
    中长住客人的周保洁

    要求在住于目标日之前且目标日仍在住（check_in < day < check_out），
    当天入住或退房的客人不计入周保洁。
    """
    if booking.is_cancelled or not booking.is_weekly_service_stay:
        return False
    if weekday is None or booking.weekly_cleaning_day != weekday:
        return False
    if booking.check_in is None or booking.check_out is None:
        return False
    return booking.check_in < day < booking.check_out


def compute_priority(is_arrival: bool, has_early_check_in: bool) -> int:
    if is_arrival and has_early_check_in:
        return PRIORITY_EARLY_ARRIVAL
    if is_arrival:
        return PRIORITY_ARRIVAL
    return PRIORITY_DEFAULT


def task_label(task: RoomTask) -> str:
    """消息中使用的任务类型标签"""
    if task.is_weekly_service_clean:
        return LABEL_WEEKLY
    if task.is_checkout and task.is_early_check_in_prep:
        return LABEL_CHECKOUT_EARLY
    if task.is_checkout:
        return LABEL_CHECKOUT
    if task.is_early_check_in_prep:
        return LABEL_EARLY_PREP
    if task.is_arrival:
        return LABEL_ARRIVAL_PREP
    return LABEL_DIRTY


def _rooms_of(rooms: Union[PropertyCatalog, Iterable[Room]]) -> List[Room]:
    if isinstance(rooms, PropertyCatalog):
        return list(rooms.rooms)
    return [r for r in rooms if r is not None]


# ============== 推导 ==============

def derive_room_task(
    room: Room,
    day: date,
    room_bookings: Iterable[Booking],
    status_record: Optional[RoomStatusRecord],
) -> RoomTask:
    """推导单个房间在某日的任务（不论是否需要清洁）"""
    weekday = get_weekday_key(day)
    checkout_booking = arrival_booking = weekly_booking = None
    has_early_check_in = False

    for booking in room_bookings:
        if booking.is_cancelled:
            continue
        if booking.check_out == day and checkout_booking is None:
            checkout_booking = booking
        if booking.check_in == day:
            arrival_booking = arrival_booking or booking
            has_early_check_in = has_early_check_in or booking.early_check_in
        if weekly_booking is None and is_weekly_service_clean(booking, day, weekday):
            weekly_booking = booking

    stored_status = (status_record.status if status_record else None) or HousekeepingStatus.CLEAN.value
    is_checkout = checkout_booking is not None
    is_arrival = arrival_booking is not None
    computed = compute_priority(is_arrival, has_early_check_in)
    override = status_record.priority if status_record else None

    return RoomTask(
        room_id=room.id,
        room_name=room.name,
        room_type=room.type,
        property_id=room.property_id,
        property_name=room.property_name,
        date=format_date(day),
        status=HousekeepingStatus.CHECKOUT_DIRTY.value if is_checkout else stored_status,
        stored_status=stored_status,
        assigned_staff=(status_record.assigned_staff if status_record else None) or UNASSIGNED,
        priority=override if override is not None else computed,
        computed_priority=computed,
        has_priority_override=override is not None,
        is_checkout=is_checkout,
        is_weekly_service_clean=weekly_booking is not None,
        is_arrival=is_arrival,
        has_early_check_in=is_arrival and has_early_check_in,
        checkout_booking_id=checkout_booking.id if checkout_booking else None,
        arrival_booking_id=arrival_booking.id if arrival_booking else None,
        weekly_booking_id=weekly_booking.id if weekly_booking else None,
    )


def build_cleaning_tasks(
    target_date: Any,
    bookings: Iterable[Union[Booking, Mapping[str, Any]]],
    room_statuses: Optional[Mapping[str, Any]],
    rooms: Union[PropertyCatalog, Iterable[Room]],
) -> List[RoomTask]:
    """
    推导目标日需要清洁的房间任务

    Args:
        target_date: 目标日期
        bookings: 预订快照
        room_statuses: {room_id: RoomStatusRecord 或映射}
        rooms: 房源目录或房间列表

    Returns:
        仅包含需要清洁的房间，按 (优先级, 房间名) 升序；日期非法时返回空列表
    """
    day = parse_date(target_date)
    if day is None:
        return []

    statuses = room_statuses_from_mapping(room_statuses)
    by_room: Dict[str, List[Booking]] = {}
    for booking in bookings_from_mappings(bookings):
        if booking.room_id:
            by_room.setdefault(booking.room_id, []).append(booking)

    tasks = []
    for room in _rooms_of(rooms):
        task = derive_room_task(room, day, by_room.get(room.id, []), statuses.get(room.id))
        if task.needs_cleaning:
            tasks.append(task)

    tasks.sort(key=lambda t: (t.priority, t.room_name))
    return tasks


def split_by_priority(tasks: Iterable[RoomTask]) -> CleaningPlan:
    """
    展示分档

    周保洁一律 low；有提前入住的到店任务为 high；其余为 normal。
    只看任务标志，人工优先级不改变档位。
    """
    plan = CleaningPlan()
    for task in tasks:
        if task.is_weekly_service_clean:
            plan.low.append(task)
        elif task.is_early_check_in_prep:
            plan.high.append(task)
        else:
            plan.normal.append(task)
    return plan


def format_cleaning_message(
    target_date: Any,
    tasks: Iterable[RoomTask],
    catalog: Optional[PropertyCatalog] = None,
) -> str:
    """
    生成按房产分组的保洁消息

    房产按目录顺序；目录之外的房产按首次出现顺序排在最后。
    每行："- 房间 | 任务类型 | P优先级 | 保洁员"
    """
    header = f"Cleaning plan {format_date(target_date)}"
    task_list = list(tasks)
    if not task_list:
        return f"{header}\n{ALL_CLEAR}"

    grouped: Dict[str, List[RoomTask]] = {}
    names: Dict[str, str] = {}
    for task in task_list:
        grouped.setdefault(task.property_id, []).append(task)
        names.setdefault(task.property_id, task.property_name)

    order = [p.id for p in catalog.properties if p.id in grouped] if catalog else []
    order += [pid for pid in grouped if pid not in order]

    lines = [header]
    for property_id in order:
        lines.append("")
        lines.append(names[property_id] or property_id or "Unknown property")
        for task in grouped[property_id]:
            lines.append(f"- {task.room_name} | {task.label} | P{task.priority} | {task.assigned_staff}")
    return "\n".join(lines)


def day_summary(target_date: Any, bookings: Iterable[Union[Booking, Mapping[str, Any]]]) -> DaySummary:
    """当日计数；周保洁采用与任务推导相同的规则"""
    day = parse_date(target_date)
    summary = DaySummary(date=format_date(day))
    if day is None:
        return summary

    weekday = get_weekday_key(day)
    for booking in bookings_from_mappings(bookings):
        if booking.is_cancelled:
            continue
        if booking.check_in == day:
            summary.check_ins += 1
            if booking.early_check_in:
                summary.early_check_ins += 1
        if booking.check_out == day:
            summary.check_outs += 1
        if is_weekly_service_clean(booking, day, weekday):
            summary.weekly_cleans += 1
    return summary


__all__ = [
    "PRIORITY_EARLY_ARRIVAL",
    "PRIORITY_ARRIVAL",
    "PRIORITY_DEFAULT",
    "ALL_CLEAR",
    "RoomTask",
    "CleaningPlan",
    "DaySummary",
    "is_weekly_service_clean",
    "compute_priority",
    "task_label",
    "derive_room_task",
    "build_cleaning_tasks",
    "split_by_priority",
    "format_cleaning_message",
    "day_summary",
]
