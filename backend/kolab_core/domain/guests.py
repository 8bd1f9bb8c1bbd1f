"""
kolab_core/domain/guests.py

客人解析的纯逻辑部分：匹配顺序、联系字段合并、回头客判定、住宿统计增量

存储查找与写入由应用层完成，这里只决定"查什么、改什么"。
"""
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from kolab_core.domain.dates import parse_date, to_datetime
from kolab_core.domain.guest_identity import NormalizedIdentity
from kolab_core.domain.records import BookingChannel

MATCHED_BY_EMAIL = "matchedByEmail"
MATCHED_BY_PHONE = "matchedByPhone"
MATCHED_BY_NAME = "matchedByName"
RETURNING_BY_STAY_COUNT = "stayCount>=1"
RETURNING_BY_PRIOR_STAY = "priorCompletedStay"

# 表示"已结束的住宿"的预订状态（兼容存储中的历史写法）
RETURNING_STATUSES = ("checked-out", "checked_out", "completed")

DEFAULT_GUEST_NAME = "Unknown guest"
DEFAULT_CHANNEL = BookingChannel.AIRBNB.value
GUEST_STATUS_ACTIVE = "active"

# 匹配字段顺序：(规范化字段, 匹配原因)
_MATCH_ORDER = (
    ("email_norm", MATCHED_BY_EMAIL),
    ("phone_norm", MATCHED_BY_PHONE),
    ("name_norm", MATCHED_BY_NAME),
)


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


@dataclass
class GuestResolution:
    """
    客人解析结果

    Attributes:
        guest_id: 匹配或新建的客人 ID
        guest: 客人记录快照（字典）
        is_returning_guest: 是否回头客
        returning_reason: stayCount>=1 / priorCompletedStay / 匹配原因 / None（新客人）
        normalized: 草稿的规范化身份
        created: 是否新建
    """

    guest_id: str
    guest: Dict[str, Any]
    is_returning_guest: bool
    returning_reason: Optional[str]
    normalized: NormalizedIdentity
    created: bool = False
    match_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "guest_id": self.guest_id,
            "guest": self.guest,
            "is_returning_guest": self.is_returning_guest,
            "returning_reason": self.returning_reason,
            "normalized": self.normalized.to_dict(),
            "created": self.created,
            "match_reason": self.match_reason,
        }


def match_plan(identity: NormalizedIdentity, allow_name_match: bool = False) -> List[Tuple[str, str, str]]:
    """
    点查顺序：邮箱 -> 电话 -> （仅 allow_name_match 时）姓名

    Returns:
        [(字段名, 规范化值, 匹配原因)]，跳过空值
    """
    plan = []
    for field_name, reason in _MATCH_ORDER:
        if field_name == "name_norm" and not allow_name_match:
            continue
        value = getattr(identity, field_name)
        if value:
            plan.append((field_name, value, reason))
    return plan


def merge_source_channels(existing: Optional[Iterable[str]], channel: Optional[str]) -> List[str]:
    """并入渠道，保持原有顺序并去重"""
    merged: List[str] = []
    for item in list(existing or []) + ([channel] if channel else []):
        if item and item not in merged:
            merged.append(item)
    return merged


def contact_updates(guest: Any, email: Optional[str], phone: Optional[str],
                    full_name: Optional[str], identity: NormalizedIdentity) -> Dict[str, Any]:
    """
    只补齐客人记录中缺失的联系字段，已有值从不覆盖

    Returns:
        需要写入的字段字典（可能为空）
    """
    updates: Dict[str, Any] = {}
    pairs = (
        ("email", email),
        ("email_norm", identity.email_norm),
        ("phone", phone),
        ("phone_norm", identity.phone_norm),
        ("full_name", full_name),
        ("name_norm", identity.name_norm),
    )
    for name, value in pairs:
        if value and not _get(guest, name):
            updates[name] = value
    return updates


def has_prior_completed_stay(prior_bookings: Iterable[Any], new_check_in: Any) -> bool:
    """
    是否存在已结束且在新入住之前离店的住宿

    取状态属于 RETURNING_STATUSES 的预订中离店最晚的一条；
    该预订缺少离店日期或新入住日期未知时，按回头客处理。
    """
    finished = [b for b in prior_bookings if _get(b, "status") in RETURNING_STATUSES]
    if not finished:
        return False
    dated = [(parse_date(_get(b, "check_out")), b) for b in finished]
    dated = [(d, b) for d, b in dated if d is not None]
    if not dated:
        return True
    latest_check_out = max(d for d, _ in dated)
    check_in = parse_date(new_check_in)
    if check_in is None:
        return True
    return latest_check_out < check_in


def decide_returning(stay_count: int, match_reason: Optional[str],
                     prior_stay: Optional[bool] = None) -> Tuple[bool, Optional[str]]:
    """
    回头客判定

    stay_count >= 1 直接判定；否则看 prior_stay（已结束的历史住宿），
    都不满足时返回 (False, 匹配原因)。
    """
    if (stay_count or 0) >= 1:
        return True, RETURNING_BY_STAY_COUNT
    if prior_stay:
        return True, RETURNING_BY_PRIOR_STAY
    return False, match_reason


def new_guest_fields(full_name: Optional[str], email: Optional[str], phone: Optional[str],
                     channel: Optional[str], identity: NormalizedIdentity) -> Dict[str, Any]:
    """新客人记录的初始字段"""
    return {
        "full_name": full_name or DEFAULT_GUEST_NAME,
        "name_norm": identity.name_norm,
        "email": email or None,
        "email_norm": identity.email_norm,
        "phone": phone or None,
        "phone_norm": identity.phone_norm,
        "tags": [],
        "notes": "",
        "stay_count": 0,
        "lifetime_nights": 0,
        "last_stay_end": None,
        "source_channels": merge_source_channels([], channel or DEFAULT_CHANNEL),
        "last_booking_id": None,
        "status": GUEST_STATUS_ACTIVE,
    }


def stay_nights(check_in: Any, check_out: Any) -> int:
    """统计用晚数：有效区间至少计 1 晚"""
    start = to_datetime(check_in)
    end = to_datetime(check_out)
    if start is None or end is None or end <= start:
        return 0
    return max(1, int(math.ceil((end - start).total_seconds() / 86400)))


@dataclass
class StatsIncrement:
    """一次已完成住宿带来的统计增量"""

    stay_count: int
    lifetime_nights: int
    last_stay_end: Optional[date]
    last_booking_id: Optional[str]
    nights_added: int = 0


def stats_after_stay(current_stay_count: int, current_lifetime_nights: int,
                     booking: Any) -> StatsIncrement:
    """计算统计更新后的值（不含幂等判断，幂等由存储层的已计数台账保证）"""
    nights = stay_nights(_get(booking, "check_in"), _get(booking, "check_out"))
    return StatsIncrement(
        stay_count=(current_stay_count or 0) + 1,
        lifetime_nights=(current_lifetime_nights or 0) + nights,
        last_stay_end=parse_date(_get(booking, "check_out")),
        last_booking_id=_get(booking, "id"),
        nights_added=nights,
    )


def resolution_summary(resolution: GuestResolution) -> str:
    """日志用的简短描述"""
    state = "new" if resolution.created else (resolution.match_reason or "matched")
    returning = f", returning ({resolution.returning_reason})" if resolution.is_returning_guest else ""
    return f"guest {resolution.guest_id} [{state}{returning}]"


__all__ = [
    "MATCHED_BY_EMAIL",
    "MATCHED_BY_PHONE",
    "MATCHED_BY_NAME",
    "RETURNING_BY_STAY_COUNT",
    "RETURNING_BY_PRIOR_STAY",
    "RETURNING_STATUSES",
    "DEFAULT_GUEST_NAME",
    "DEFAULT_CHANNEL",
    "GuestResolution",
    "match_plan",
    "merge_source_channels",
    "contact_updates",
    "has_prior_completed_stay",
    "decide_returning",
    "new_guest_fields",
    "stay_nights",
    "StatsIncrement",
    "stats_after_stay",
    "resolution_summary",
]
