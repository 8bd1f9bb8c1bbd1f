"""
kolab_core/domain/stays.py

入住规则 - 入住类别推导、预订草稿规范化、表单级校验
"""
from dataclasses import replace
from typing import Any, Mapping, Optional, Union

from kolab_core.domain.dates import calculate_nights
from kolab_core.domain.records import (
    Booking,
    BookingChannel,
    BookingStatus,
    PaymentStatus,
    StayCategory,
    WEEKDAY_KEYS,
)

MEDIUM_STAY_MIN_NIGHTS = 7
LONG_STAY_MIN_NIGHTS = 31

INVALID_DATE_ORDER_REASON = "Check-out date must be strictly after the Check-in date."
MISSING_DATES_REASON = "Check-in and check-out dates are required."
MISSING_ROOM_REASON = "A room must be selected."
MISSING_GUEST_REASON = "Guest name is required."
MISSING_PAYMENT_REASON = "Payment status is required for direct bookings."


def derive_stay_category(nights: int) -> str:
    """short (<7 晚), medium (7-30), long (31+)"""
    if nights >= LONG_STAY_MIN_NIGHTS:
        return StayCategory.LONG.value
    if nights >= MEDIUM_STAY_MIN_NIGHTS:
        return StayCategory.MEDIUM.value
    return StayCategory.SHORT.value


def _valid_category(value: Any) -> Optional[str]:
    if value in {c.value for c in StayCategory}:
        return value
    return None


def normalize_booking(draft: Union[Booking, Mapping[str, Any]]) -> Booking:
    """
    规范化预订草稿

    - nights 由日期重新计算
    - stay_category 未显式给出时由晚数推导
    - is_long_term 由类别推导（medium/long）
    - weekly_cleaning_day 仅中长住保留，统一小写
    - payment_status 仅 direct 渠道保留
    - 总价缺省时由每晚价格 x 晚数补齐

    Returns:
        新的 Booking（不修改输入）
    """
    booking = draft if isinstance(draft, Booking) else Booking.from_mapping(draft)

    nights = calculate_nights(booking.check_in, booking.check_out)
    category = _valid_category(booking.stay_category) or derive_stay_category(nights)
    is_long_term = category in (StayCategory.MEDIUM.value, StayCategory.LONG.value)

    weekly_day = booking.weekly_cleaning_day
    if weekly_day:
        weekly_day = str(weekly_day).strip().lower() or None
    if not is_long_term:
        weekly_day = None

    channel = (booking.channel or BookingChannel.AIRBNB.value).strip().lower()
    payment_status = booking.payment_status if channel == BookingChannel.DIRECT.value else None

    try:
        price = float(booking.price or 0)
    except (TypeError, ValueError):
        price = 0.0
    nightly_price = booking.nightly_price
    try:
        nightly_price = float(nightly_price) if nightly_price not in (None, "") else None
    except (TypeError, ValueError):
        nightly_price = None
    if not price and nightly_price and nights:
        price = round(nightly_price * nights, 2)

    return replace(
        booking,
        guest_name=(booking.guest_name or "").strip(),
        email=(booking.email or "").strip() or None,
        phone=(booking.phone or "").strip() or None,
        nights=nights,
        stay_category=category,
        is_long_term=is_long_term,
        weekly_cleaning_day=weekly_day,
        channel=channel,
        payment_status=payment_status,
        price=price,
        nightly_price=nightly_price,
        status=booking.status or BookingStatus.CONFIRMED.value,
    )


def validate_booking(booking: Booking) -> Optional[str]:
    """
    表单级校验（冲突检测之外的保存前检查）

    Returns:
        第一个不通过的原因；全部通过返回 None
    """
    if not booking.room_id:
        return MISSING_ROOM_REASON
    if not booking.guest_name:
        return MISSING_GUEST_REASON
    if booking.check_in is None or booking.check_out is None:
        return MISSING_DATES_REASON
    if booking.check_in >= booking.check_out:
        return INVALID_DATE_ORDER_REASON
    if booking.channel not in {c.value for c in BookingChannel}:
        return f"Unknown booking channel '{booking.channel}'."
    if booking.channel == BookingChannel.DIRECT.value:
        if booking.payment_status not in {p.value for p in PaymentStatus}:
            return MISSING_PAYMENT_REASON
    if booking.weekly_cleaning_day and booking.weekly_cleaning_day not in WEEKDAY_KEYS:
        return f"Unknown weekly cleaning day '{booking.weekly_cleaning_day}'."
    if booking.status not in {s.value for s in BookingStatus}:
        return f"Unknown booking status '{booking.status}'."
    return None


__all__ = [
    "MEDIUM_STAY_MIN_NIGHTS",
    "LONG_STAY_MIN_NIGHTS",
    "INVALID_DATE_ORDER_REASON",
    "MISSING_PAYMENT_REASON",
    "derive_stay_category",
    "normalize_booking",
    "validate_booking",
]
