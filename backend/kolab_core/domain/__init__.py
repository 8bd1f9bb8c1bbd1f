"""
kolab_core/domain/__init__.py

领域层入口点 - 与存储无关的纯函数
"""
from kolab_core.domain.records import (
    BookingStatus,
    StayCategory,
    BookingChannel,
    PaymentStatus,
    HousekeepingStatus,
    IssueStatus,
    UNASSIGNED,
    Room,
    Booking,
    RoomStatusRecord,
    MaintenanceIssue,
    RecurringTask,
)
from kolab_core.domain.catalog import CatalogError, Location, Property, PropertyCatalog
from kolab_core.domain.dates import (
    format_date,
    parse_date,
    calculate_nights,
    add_months,
    get_weekday_key,
    get_days_array,
    get_occupied_dates,
)
from kolab_core.domain.conflicts import ConflictResult, RoomOption, check_conflict, room_options
from kolab_core.domain.guest_identity import (
    NormalizedIdentity,
    normalize_email,
    normalize_phone,
    normalize_name,
)
from kolab_core.domain.guests import GuestResolution
from kolab_core.domain.housekeeping import (
    RoomTask,
    CleaningPlan,
    DaySummary,
    build_cleaning_tasks,
    split_by_priority,
    format_cleaning_message,
    day_summary,
)
from kolab_core.domain.stays import derive_stay_category, normalize_booking, validate_booking

__all__ = [
    "BookingStatus",
    "StayCategory",
    "BookingChannel",
    "PaymentStatus",
    "HousekeepingStatus",
    "IssueStatus",
    "UNASSIGNED",
    "Room",
    "Booking",
    "RoomStatusRecord",
    "MaintenanceIssue",
    "RecurringTask",
    "CatalogError",
    "Location",
    "Property",
    "PropertyCatalog",
    "format_date",
    "parse_date",
    "calculate_nights",
    "add_months",
    "get_weekday_key",
    "get_days_array",
    "get_occupied_dates",
    "ConflictResult",
    "RoomOption",
    "check_conflict",
    "room_options",
    "NormalizedIdentity",
    "normalize_email",
    "normalize_phone",
    "normalize_name",
    "GuestResolution",
    "RoomTask",
    "CleaningPlan",
    "DaySummary",
    "build_cleaning_tasks",
    "split_by_priority",
    "format_cleaning_message",
    "day_summary",
    "derive_stay_category",
    "normalize_booking",
    "validate_booking",
]
