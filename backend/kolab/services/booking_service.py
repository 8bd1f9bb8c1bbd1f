"""
预订服务 - 预订保存、删除与冲突检查

保存流程：
规范化草稿 -> 表单校验 -> 只读冲突预检 -> 客人解析
-> 单事务内冲突检查并写入 -> 轮询回读确认 -> 发布事件
"""
from datetime import date, datetime
from typing import Any, Callable, List, Optional
import logging
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kolab.config import settings
from kolab.database import new_id
from kolab.models.events import BookingEventData, EventType
from kolab.models.ontology import Booking
from kolab.services.guest_service import GuestService, as_booking_record
from kolab.services.results import (
    CODE_CONFIRM_TIMEOUT,
    CODE_CONFLICT,
    CODE_NOT_FOUND,
    CODE_VALIDATION,
    OperationResult,
    normalize_error,
)
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.conflicts import ConflictResult, RoomOption, check_conflict, room_options
from kolab_core.domain.dates import get_occupied_dates
from kolab_core.domain.records import BookingStatus
from kolab_core.domain.stays import normalize_booking, validate_booking
from kolab_core.engine.event_bus import Event, event_bus
from kolab_core.sync.confirm import poll_until
from kolab_core.sync.optimistic import OP_DELETE, OptimisticCollection

logger = logging.getLogger(__name__)

SAVE_NOT_CONFIRMED = "Save not confirmed. Please retry."
DELETE_NOT_CONFIRMED = "Delete not confirmed. Please retry."

# 草稿写入 ORM 行的字段
_WRITABLE_FIELDS = (
    "room_id", "guest_name", "email", "phone", "check_in", "check_out", "status",
    "price", "nightly_price", "nights", "stay_category", "is_long_term",
    "weekly_cleaning_day", "early_check_in", "channel", "payment_status", "guest_id", "notes",
)


class BookingService:
    """预订服务"""

    def __init__(
        self,
        db: Session,
        catalog: PropertyCatalog,
        event_publisher: Callable[[Event], Any] = None,
        guest_service: Optional[GuestService] = None,
        confirm_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.catalog = catalog
        self._publish_event = event_publisher or event_bus.publish
        self._guest_service = guest_service or GuestService(db, event_publisher=self._publish_event)
        self._confirm_timeout = settings.BOOKING_CONFIRM_TIMEOUT_SECONDS if confirm_timeout is None else confirm_timeout
        self._poll_interval = settings.BOOKING_CONFIRM_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self._clock = clock
        self._sleep = sleep

    # ============== 查询 ==============

    def list_bookings(self, room_id: Optional[str] = None, status: Optional[str] = None) -> List[Booking]:
        """预订列表，按入住日期排序"""
        query = self.db.query(Booking)
        if room_id:
            query = query.filter(Booking.room_id == room_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.check_in, Booking.room_id).all()

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def _all_records(self, room_id: Optional[str] = None):
        return [b.to_record() for b in self.list_bookings(room_id=room_id)]

    def check_conflict(self, candidate: Any, exclude_id: Optional[str] = None) -> ConflictResult:
        """对已存储的预订做冲突检查（只读）"""
        record = as_booking_record(candidate)
        result = check_conflict(record, self._all_records(room_id=record.room_id), exclude_id=exclude_id)
        if result.conflict:
            logger.info(f"Conflict check rejected room {record.room_id}: {result.reason}")
        return result

    def occupied_dates(self, room_id: str, exclude_id: Optional[str] = None) -> List[str]:
        """房间被占用的日期（升序）"""
        return sorted(get_occupied_dates(self._all_records(room_id=room_id), room_id, exclude_id))

    def room_options(self, today: Any = None, editing_id: Optional[str] = None) -> List[RoomOption]:
        return room_options(self.catalog, self._all_records(), today or date.today(), editing_id)

    # ============== 写入 ==============

    def _read_back(self, booking_id: str) -> Optional[Booking]:
        """从存储重新读取（忽略会话缓存），并结束读事务"""
        row = self.db.query(Booking).populate_existing().filter(Booking.id == booking_id).first()
        self.db.commit()
        return row

    def _confirm(self, booking_id: str, predicate: Callable[[Optional[Booking]], bool]):
        return poll_until(
            read=lambda: self._read_back(booking_id),
            predicate=predicate,
            timeout=self._confirm_timeout,
            interval=self._poll_interval,
            clock=self._clock,
            sleep=self._sleep,
        )

    def _publish(self, event_type: EventType, row: Booking, previous_status: Optional[str] = None,
                 actor: Optional[str] = None) -> None:
        self._publish_event(Event(
            event_type=event_type.value,
            timestamp=datetime.now(),
            data=BookingEventData(
                booking_id=row.id,
                room_id=row.room_id,
                guest_id=row.guest_id,
                guest_name=row.guest_name,
                check_in=row.check_in,
                check_out=row.check_out,
                status=row.status,
                previous_status=previous_status,
                changed_by=actor,
            ).to_dict(),
            source="booking_service",
            actor=actor,
        ))

    @staticmethod
    def _conflict_failure(record, conflict: ConflictResult) -> OperationResult:
        logger.info(f"Booking save rejected for room {record.room_id}: {conflict.reason}")
        return OperationResult.failure(
            CODE_CONFLICT, conflict.reason,
            conflicting_booking=conflict.conflicting_booking,
        )

    def save_booking(
        self,
        draft: Any,
        existing_id: Optional[str] = None,
        allow_name_match: bool = False,
        local_state: Optional[OptimisticCollection] = None,
        acting_user: Optional[str] = None,
    ) -> OperationResult:
        """
        创建或更新预订

        Args:
            draft: 预订草稿（映射或纯记录）
            existing_id: 编辑时的预订 ID
            allow_name_match: 客人解析是否允许按姓名匹配
            local_state: 乐观本地视图，写入前应用，确认后替换，失败回滚
            acting_user: 操作人

        Returns:
            OperationResult，data 为确认后的 Booking 行
        """
        record = normalize_booking(as_booking_record(draft))

        reason = validate_booking(record)
        if reason:
            return OperationResult.failure(CODE_VALIDATION, reason)
        if not self.catalog.has_room(record.room_id):
            return OperationResult.failure(CODE_VALIDATION, f"Unknown room '{record.room_id}'.")

        previous_status = None
        try:
            existing = self.get_booking(existing_id) if existing_id else None
            # 冲突预检（只读），被拒绝的预订不写入客人数据
            precheck = ConflictResult(conflict=False)
            if not record.is_cancelled:
                precheck = check_conflict(record, self._all_records(room_id=record.room_id), exclude_id=existing_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "save_booking")
        if existing_id:
            if existing is None:
                return OperationResult.failure(CODE_NOT_FOUND, "Booking not found")
            previous_status = existing.status
            record.guest_id = record.guest_id or existing.guest_id
        if precheck.conflict:
            return self._conflict_failure(record, precheck)

        # 已关联客人的预订保留原关联
        if not record.guest_id:
            resolution = self._guest_service.resolve_guest_for_booking(record, allow_name_match=allow_name_match)
            if resolution.ok:
                record.guest_id = resolution.data.guest_id
            else:
                logger.warning(f"Guest resolution failed, saving booking without guest link: {resolution.message}")

        booking_id = existing_id or record.id or new_id()
        record.id = booking_id
        if local_state is not None:
            local_state.apply_pending(booking_id, record)

        try:
            # 冲突检查与写入在同一事务内（SQLite 为 BEGIN IMMEDIATE）
            others = (
                self.db.query(Booking)
                .filter(Booking.room_id == record.room_id, Booking.status != BookingStatus.CANCELLED.value)
                .with_for_update()
                .all()
            )
            candidates = [] if record.is_cancelled else [o.to_record() for o in others]
            conflict = check_conflict(record, candidates, exclude_id=existing_id)
            if conflict.conflict:
                self.db.rollback()
                if local_state is not None:
                    local_state.rollback(booking_id, conflict.reason)
                return self._conflict_failure(record, conflict)

            row = self.db.query(Booking).filter(Booking.id == booking_id).first() if existing_id else None
            if row is None:
                row = Booking(id=booking_id, created_by=acting_user)
                self.db.add(row)
            for name in _WRITABLE_FIELDS:
                setattr(row, name, getattr(record, name))
            row.updated_by = acting_user
            row.updated_at = datetime.now()
            self.db.commit()
            written = (row.room_id, row.check_in, row.check_out, row.status)
        except SQLAlchemyError as e:
            self.db.rollback()
            if local_state is not None:
                local_state.rollback(booking_id, str(e))
            return normalize_error(e, "save_booking")

        try:
            confirmed, row = self._confirm(
                booking_id,
                lambda r: r is not None and (r.room_id, r.check_in, r.check_out, r.status) == written,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            if local_state is not None:
                local_state.rollback(booking_id, str(e))
            return normalize_error(e, "save_booking confirm")

        if not confirmed:
            if local_state is not None:
                local_state.rollback(booking_id, SAVE_NOT_CONFIRMED)
            logger.warning(f"Booking {booking_id} save not confirmed within {self._confirm_timeout}s")
            return OperationResult.failure(CODE_CONFIRM_TIMEOUT, SAVE_NOT_CONFIRMED)

        if local_state is not None:
            local_state.confirm(booking_id, row.to_record())
        logger.info(f"Booking {booking_id} saved for room {row.room_id} ({row.check_in} -> {row.check_out})")

        self._publish(EventType.BOOKING_UPDATED if existing_id else EventType.BOOKING_CREATED,
                      row, previous_status, acting_user)
        if existing_id and previous_status != row.status:
            self._publish(EventType.BOOKING_STATUS_CHANGED, row, previous_status, acting_user)
        if row.status == BookingStatus.CHECKED_OUT.value and previous_status != row.status:
            self._publish(EventType.BOOKING_CHECKED_OUT, row, previous_status, acting_user)
        return OperationResult.success(row)

    def remove_booking(
        self,
        booking_id: str,
        local_state: Optional[OptimisticCollection] = None,
        acting_user: Optional[str] = None,
    ) -> OperationResult:
        """删除预订，并轮询确认记录已不存在"""
        try:
            row = self.get_booking(booking_id)
            if row is None:
                self.db.rollback()
                return OperationResult.failure(CODE_NOT_FOUND, "Booking not found")
            if local_state is not None:
                local_state.apply_pending(booking_id, op=OP_DELETE)
            self.db.delete(row)
            self.db.commit()
            confirmed, _ = self._confirm(booking_id, lambda r: r is None)
        except SQLAlchemyError as e:
            self.db.rollback()
            if local_state is not None:
                local_state.rollback(booking_id, str(e))
            return normalize_error(e, "remove_booking")

        if not confirmed:
            if local_state is not None:
                local_state.rollback(booking_id, DELETE_NOT_CONFIRMED)
            logger.warning(f"Booking {booking_id} delete not confirmed within {self._confirm_timeout}s")
            return OperationResult.failure(CODE_CONFIRM_TIMEOUT, DELETE_NOT_CONFIRMED)

        if local_state is not None:
            local_state.confirm(booking_id, None)
        logger.info(f"Booking {booking_id} deleted")
        self._publish(EventType.BOOKING_DELETED, row, row.status, acting_user)
        return OperationResult.success({"id": booking_id})
