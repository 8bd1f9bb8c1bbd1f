"""
kolab_core/domain/stats.py

经营统计 - 仪表盘数据

收入按入住日所在月份归属；已取消的预订不计收入与入住率。
"""
import calendar
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import parse_date, to_datetime
from kolab_core.domain.records import Booking, bookings_from_mappings

UNKNOWN_PROPERTY = "Unknown property"
MONTHS_OF_REVENUE = 6
DAYS_PER_MONTH = 30


@dataclass
class MonthlyRevenue:
    year: int
    month: int
    label: str
    revenue: float


@dataclass
class DashboardStats:
    """仪表盘统计"""

    monthly_revenue: List[MonthlyRevenue] = field(default_factory=list)
    revenue_by_property: Dict[str, float] = field(default_factory=dict)
    occupancy_rate: int = 0
    avg_lead_time: int = 0
    active_bookings: int = 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _shift_month(year: int, month: int, delta: int):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def lead_time_days(booking: Booking) -> Optional[int]:
    """创建到入住的天数（向上取整，取绝对值）"""
    if booking.created_at is None or booking.check_in is None:
        return None
    created = to_datetime(booking.created_at)
    check_in = to_datetime(booking.check_in)
    seconds = abs((check_in - created).total_seconds())
    return int(math.ceil(seconds / 86400))


def dashboard_stats(
    bookings: Iterable[Union[Booking, Mapping[str, Any]]],
    catalog: PropertyCatalog,
    today: Any = None,
) -> DashboardStats:
    """
    计算仪表盘统计

    Args:
        bookings: 预订快照
        catalog: 房源目录（房产名称与房间数）
        today: 参考日期，默认今天

    Returns:
        DashboardStats
    """
    day = parse_date(today) or date.today()
    records = bookings_from_mappings(bookings)
    live = [b for b in records if not b.is_cancelled]

    stats = DashboardStats()

    for offset in range(MONTHS_OF_REVENUE - 1, -1, -1):
        year, month = _shift_month(day.year, day.month, -offset)
        revenue = sum(
            b.price or 0 for b in live
            if b.check_in is not None and b.check_in.year == year and b.check_in.month == month
        )
        stats.monthly_revenue.append(MonthlyRevenue(
            year=year, month=month, label=calendar.month_abbr[month], revenue=revenue,
        ))

    stats.revenue_by_property = {p.name: 0.0 for p in catalog.properties}
    stats.revenue_by_property.setdefault(UNKNOWN_PROPERTY, 0.0)
    for booking in live:
        room = catalog.get_room(booking.room_id)
        name = room.property_name if room else UNKNOWN_PROPERTY
        stats.revenue_by_property[name] = stats.revenue_by_property.get(name, 0.0) + (booking.price or 0)

    available = len(catalog.rooms) * DAYS_PER_MONTH
    booked = sum(
        b.nights or 0 for b in live
        if b.check_in is not None and b.check_in.year == day.year and b.check_in.month == day.month
    )
    stats.occupancy_rate = min(100, _round_half_up(booked / available * 100)) if available else 0

    lead_times = [t for t in (lead_time_days(b) for b in records) if t is not None]
    stats.avg_lead_time = _round_half_up(sum(lead_times) / len(lead_times)) if lead_times else 0

    stats.active_bookings = sum(
        1 for b in live
        if b.check_in is not None and b.check_out is not None and b.check_in <= day < b.check_out
    )
    return stats


__all__ = ["UNKNOWN_PROPERTY", "MonthlyRevenue", "DashboardStats", "lead_time_days", "dashboard_stats"]
