"""
客人服务 - 客人解析、去重与住宿统计

匹配顺序：规范化邮箱 -> 规范化电话 -> （可选）规范化姓名，均为索引点查。
住宿统计通过 guest_counted_stays 台账保证每个预订只计数一次。
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from kolab.database import new_id
from kolab.models.events import EventType, GuestEventData
from kolab.models.ontology import Booking, Guest, GuestCountedStay
from kolab.services.results import (
    CODE_NOT_FOUND,
    CODE_VALIDATION,
    OperationResult,
    normalize_error,
)
from kolab_core.domain import records
from kolab_core.domain.guest_identity import NormalizedIdentity
from kolab_core.domain.guests import (
    DEFAULT_CHANNEL,
    RETURNING_STATUSES,
    GuestResolution,
    contact_updates,
    decide_returning,
    has_prior_completed_stay,
    match_plan,
    merge_source_channels,
    new_guest_fields,
    resolution_summary,
    stats_after_stay,
)
from kolab_core.engine.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


def as_booking_record(booking: Any) -> records.Booking:
    """ORM 行 / 纯记录 / 映射 统一为纯记录"""
    if isinstance(booking, records.Booking):
        return booking
    if hasattr(booking, "to_record"):
        return booking.to_record()
    return records.Booking.from_mapping(booking or {})


class GuestService:
    """客人服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], Any] = None):
        self.db = db
        # 支持依赖注入事件发布器，便于测试
        self._publish_event = event_publisher or event_bus.publish

    # ============== 查询 ==============

    def list_guests(self, search: Optional[str] = None, limit: int = 200) -> List[Guest]:
        """客人列表，可按姓名/邮箱/电话模糊搜索"""
        query = self.db.query(Guest)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Guest.full_name.ilike(pattern),
                Guest.email.ilike(pattern),
                Guest.phone.ilike(pattern),
            ))
        return query.order_by(Guest.full_name).limit(limit).all()

    def get_guest(self, guest_id: str) -> Optional[Guest]:
        return self.db.query(Guest).filter(Guest.id == guest_id).first()

    def update_guest(self, guest_id: str, changes: Mapping[str, Any]) -> OperationResult:
        """更新标签、备注、状态"""
        try:
            guest = self.get_guest(guest_id)
            if guest is None:
                return OperationResult.failure(CODE_NOT_FOUND, "Guest not found")
            for key in ("tags", "notes", "status"):
                if changes.get(key) is not None:
                    setattr(guest, key, list(changes[key]) if key == "tags" else changes[key])
            guest.updated_at = datetime.now()
            self.db.commit()
            return OperationResult.success(guest)
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "update_guest")

    # ============== 匹配 ==============

    def _find_by(self, field_name: str, value: str) -> Optional[Guest]:
        column = getattr(Guest, field_name)
        # 多条命中时取最近更新的一条
        return self.db.query(Guest).filter(column == value).order_by(Guest.updated_at.desc()).first()

    def _find_existing(self, identity: NormalizedIdentity,
                       allow_name_match: bool) -> Tuple[Optional[Guest], Optional[str]]:
        for field_name, value, reason in match_plan(identity, allow_name_match):
            guest = self._find_by(field_name, value)
            if guest is not None:
                return guest, reason
        return None, None

    def _has_prior_completed_stay(self, guest_id: str, check_in: Any) -> bool:
        try:
            prior = (
                self.db.query(Booking)
                .filter(Booking.guest_id == guest_id, Booking.status.in_(RETURNING_STATUSES))
                .all()
            )
        except SQLAlchemyError as e:
            logger.warning(f"Prior stay check failed for guest {guest_id}: {e}")
            return False
        return has_prior_completed_stay([b.to_record() for b in prior], check_in)

    def _returning_status(self, guest: Guest, match_reason: Optional[str], check_in: Any):
        is_returning, reason = decide_returning(guest.stay_count or 0, match_reason)
        if not is_returning:
            prior = self._has_prior_completed_stay(guest.id, check_in)
            is_returning, reason = decide_returning(guest.stay_count or 0, match_reason, prior)
        return is_returning, reason

    # ============== 解析 ==============

    def resolve_guest_for_booking(self, draft: Any, allow_name_match: bool = False) -> OperationResult:
        """
        为预订解析客人：命中则补齐缺失联系字段，否则新建

        Args:
            draft: 预订草稿（纯记录、ORM 行或映射）
            allow_name_match: 是否允许按姓名匹配（显式开启的启发式）

        Returns:
            OperationResult，data 为 GuestResolution
        """
        booking = as_booking_record(draft)
        identity = NormalizedIdentity.of(booking.email, booking.phone, booking.guest_name)
        channel = booking.channel or DEFAULT_CHANNEL

        try:
            guest, match_reason = self._find_existing(identity, allow_name_match)

            if guest is not None:
                is_returning, reason = self._returning_status(guest, match_reason, booking.check_in)
                snapshot = guest.to_dict()
                updates = contact_updates(guest, booking.email, booking.phone, booking.guest_name, identity)
                updates["source_channels"] = merge_source_channels(guest.source_channels, channel)
                for key, value in updates.items():
                    setattr(guest, key, value)
                guest.updated_at = datetime.now()
                self.db.commit()

                resolution = GuestResolution(
                    guest_id=guest.id,
                    guest=snapshot,
                    is_returning_guest=is_returning,
                    returning_reason=reason,
                    normalized=identity,
                    match_reason=match_reason,
                )
                logger.info(f"Resolved {resolution_summary(resolution)}")
                return OperationResult.success(resolution)

            fields = new_guest_fields(booking.guest_name, booking.email, booking.phone, channel, identity)
            guest = Guest(id=new_id(), **fields)
            self.db.add(guest)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "resolve_guest_for_booking")

        resolution = GuestResolution(
            guest_id=guest.id,
            guest=guest.to_dict(),
            is_returning_guest=False,
            returning_reason=None,
            normalized=identity,
            created=True,
        )
        logger.info(f"Created {resolution_summary(resolution)}")
        self._publish_event(Event(
            event_type=EventType.GUEST_CREATED.value,
            timestamp=datetime.now(),
            data=GuestEventData(guest_id=guest.id, full_name=guest.full_name).to_dict(),
            source="guest_service",
        ))
        return OperationResult.success(resolution)

    def preview_returning_guest(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        name: Optional[str] = None,
        allow_name_match: bool = False,
        check_in: Any = None,
    ) -> OperationResult:
        """
        只读预览：草稿是否对应已有客人、是否回头客（不写入）

        Returns:
            OperationResult，data 为 GuestResolution 或 None（无匹配）
        """
        identity = NormalizedIdentity.of(email, phone, name)
        try:
            guest, match_reason = self._find_existing(identity, allow_name_match)
            if guest is None:
                return OperationResult.success(None)
            is_returning, reason = self._returning_status(guest, match_reason, check_in)
            return OperationResult.success(GuestResolution(
                guest_id=guest.id,
                guest=guest.to_dict(),
                is_returning_guest=is_returning,
                returning_reason=reason,
                normalized=identity,
                match_reason=match_reason,
            ))
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "preview_returning_guest")
        finally:
            # 结束只读事务
            if self.db.in_transaction():
                self.db.rollback()

    # ============== 统计 ==============

    def update_guest_stats_from_booking(self, booking: Any) -> OperationResult:
        """
        一次已完成住宿计入客人统计（幂等）

        同一预订重复调用时返回 ok=True 且 data={"already_counted": True}，不重复累加。
        """
        record = as_booking_record(booking)
        if not record.guest_id:
            return OperationResult.failure(CODE_VALIDATION, "Missing guestId on booking")
        if not record.id:
            return OperationResult.failure(CODE_VALIDATION, "Missing booking id")

        try:
            guest = self.db.query(Guest).filter(Guest.id == record.guest_id).with_for_update().first()
            if guest is None:
                self.db.rollback()
                return OperationResult.failure(CODE_NOT_FOUND, "Guest not found")

            counted = (
                self.db.query(GuestCountedStay)
                .filter(GuestCountedStay.booking_id == record.id)
                .first()
            )
            if counted is not None:
                self.db.rollback()
                logger.info(f"Stay {record.id} already counted for guest {counted.guest_id}")
                return OperationResult.success({"already_counted": True})

            increment = stats_after_stay(guest.stay_count, guest.lifetime_nights, record)
            guest.stay_count = increment.stay_count
            guest.lifetime_nights = increment.lifetime_nights
            guest.last_stay_end = increment.last_stay_end
            guest.last_booking_id = increment.last_booking_id
            guest.updated_at = datetime.now()
            self.db.add(GuestCountedStay(
                guest_id=guest.id,
                booking_id=record.id,
                nights=increment.nights_added,
            ))
            self.db.commit()
        except IntegrityError:
            # 并发计数：另一个事务已写入台账
            self.db.rollback()
            logger.info(f"Stay {record.id} counted concurrently, skipping")
            return OperationResult.success({"already_counted": True})
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "update_guest_stats_from_booking")

        data: Dict[str, Any] = {
            "already_counted": False,
            "guest_id": guest.id,
            "stay_count": guest.stay_count,
            "lifetime_nights": guest.lifetime_nights,
        }
        self._publish_event(Event(
            event_type=EventType.GUEST_STATS_UPDATED.value,
            timestamp=datetime.now(),
            data=GuestEventData(
                guest_id=guest.id,
                full_name=guest.full_name,
                booking_id=record.id,
                stay_count=guest.stay_count,
                lifetime_nights=guest.lifetime_nights,
            ).to_dict(),
            source="guest_service",
        ))
        return OperationResult.success(data)
