"""
kolab_core/domain/dates.py

日期/区间工具 - 纯日期运算

所有函数对非法输入"失败即关闭"：格式化返回 ""，晚数返回 0，
解析返回 None，不抛出异常。日期一律按本地日历日处理，不做时区换算。
"""
import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional, Set

DATE_FORMAT = "%Y-%m-%d"

_WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_date(value: Any) -> Optional[date]:
    """
    解析为日历日

    Args:
        value: date / datetime / "YYYY-MM-DD" / ISO 时间戳字符串

    Returns:
        date 对象，无法解析时返回 None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10]) if len(text) >= 10 and text[4] == "-" else date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, str) and "T" in value:
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            return None
    day = parse_date(value)
    if day is None:
        return None
    return datetime(day.year, day.month, day.day)


def format_date(value: Any) -> str:
    """格式化为 YYYY-MM-DD，非法输入返回空字符串"""
    day = parse_date(value)
    if day is None:
        return ""
    return day.strftime(DATE_FORMAT)


def calculate_nights(check_in: Any, check_out: Any) -> int:
    """
    计算晚数：整天差值向上取整

    入住晚于或等于离店、或任一日期非法时返回 0，不会返回负数。
    """
    start = to_datetime(check_in)
    end = to_datetime(check_out)
    if start is None or end is None or end <= start:
        return 0
    seconds = (end - start).total_seconds()
    return int(math.ceil(seconds / 86400))


def add_months(date_str: Any, months: int = 1) -> Any:
    """
    按日历月递增

    与原生日期运算一致：月末溢出的天数顺延到下个月
    （2024-01-31 加一个月得到 2024-03-02），不做月末钳制。
    无法解析时原样返回输入。
    """
    day = parse_date(date_str)
    if day is None:
        return date_str
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    shifted = date(year, month, 1) + timedelta(days=day.day - 1)
    return shifted.strftime(DATE_FORMAT)


def get_weekday_key(date_str: Any) -> Optional[str]:
    """返回 monday..sunday 之一；非法日期返回 None"""
    day = parse_date(date_str)
    if day is None:
        return None
    return _WEEKDAY_KEYS[day.weekday()]


def get_days_array(start: Any, end: Any) -> List[date]:
    """枚举 [start, end] 闭区间内的每一天"""
    first = parse_date(start)
    last = parse_date(end)
    if first is None or last is None:
        return []
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def iter_nights(check_in: Any, check_out: Any) -> Iterable[date]:
    """枚举半开区间 [check_in, check_out) 内被占用的每一晚"""
    current = parse_date(check_in)
    end = parse_date(check_out)
    if current is None or end is None:
        return
    while current < end:
        yield current
        current += timedelta(days=1)


def get_occupied_dates(bookings, room_id: str, exclude_id: Optional[str] = None) -> Set[str]:
    """
    房间被占用的日期集合（用于日期选择器屏蔽）

    覆盖该房间每个未取消预订的 [check_in, check_out)，排除 exclude_id。

    Args:
        bookings: Booking 记录或映射的序列
        room_id: 房间 ID
        exclude_id: 正在编辑的预订 ID

    Returns:
        "YYYY-MM-DD" 字符串集合
    """
    from kolab_core.domain.records import bookings_from_mappings

    occupied: Set[str] = set()
    for booking in bookings_from_mappings(bookings):
        if booking.room_id != room_id or booking.is_cancelled:
            continue
        if exclude_id is not None and booking.id == exclude_id:
            continue
        for night in iter_nights(booking.check_in, booking.check_out):
            occupied.add(night.strftime(DATE_FORMAT))
    return occupied


__all__ = [
    "DATE_FORMAT",
    "parse_date",
    "format_date",
    "calculate_nights",
    "add_months",
    "get_weekday_key",
    "get_days_array",
    "iter_nights",
    "to_datetime",
    "get_occupied_dates",
]
