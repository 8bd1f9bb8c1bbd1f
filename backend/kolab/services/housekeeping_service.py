"""
保洁服务 - 房态维护与每日保洁计划
支持事件发布：房态变更、标记已清洁
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kolab.config import settings
from kolab.models.events import EventType, RoomStatusEventData
from kolab.models.ontology import Booking, RoomStatus
from kolab.services.results import CODE_NOT_FOUND, CODE_VALIDATION, OperationResult, normalize_error
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.housekeeping import (
    CleaningPlan,
    DaySummary,
    RoomTask,
    build_cleaning_tasks,
    day_summary,
    format_cleaning_message,
    split_by_priority,
)
from kolab_core.domain.records import HousekeepingStatus, RoomStatusRecord, UNASSIGNED
from kolab_core.engine.event_bus import Event, event_bus
from kolab_core.sync.optimistic import OptimisticCollection

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("status", "assigned_staff", "priority")
MIN_PRIORITY = 1
MAX_PRIORITY = 5


class HousekeepingService:
    """保洁服务"""

    def __init__(
        self,
        db: Session,
        catalog: PropertyCatalog,
        event_publisher: Callable[[Event], Any] = None,
        staff: Optional[Sequence[str]] = None,
    ):
        self.db = db
        self.catalog = catalog
        self._publish_event = event_publisher or event_bus.publish
        self._staff = list(staff if staff is not None else settings.STAFF)

    # ============== 房态 ==============

    def get_room_statuses(self) -> Dict[str, RoomStatusRecord]:
        """{room_id: RoomStatusRecord}，仅包含有存储记录的房间"""
        return {row.room_id: row.to_record() for row in self.db.query(RoomStatus).all()}

    def _validate_field(self, field: str, value: Any):
        """校验并转换字段值，返回 (值, 错误原因)"""
        if field not in EDITABLE_FIELDS:
            return None, f"Field '{field}' cannot be edited."
        if field == "status":
            if value not in {s.value for s in HousekeepingStatus}:
                return None, f"Unknown housekeeping status '{value}'."
            return value, None
        if field == "assigned_staff":
            staff = value or UNASSIGNED
            if self._staff and staff not in self._staff:
                return None, f"Unknown staff member '{staff}'."
            return staff, None
        # priority：None 表示取消人工覆盖
        if value in (None, ""):
            return None, None
        try:
            priority = int(value)
        except (TypeError, ValueError):
            return None, f"Priority must be a number between {MIN_PRIORITY} and {MAX_PRIORITY}."
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            return None, f"Priority must be a number between {MIN_PRIORITY} and {MAX_PRIORITY}."
        return priority, None

    def _publish(self, event_type: EventType, room_id: str, field: str, old_value: Any,
                 new_value: Any, actor: Optional[str]) -> None:
        self._publish_event(Event(
            event_type=event_type.value,
            timestamp=datetime.now(),
            data=RoomStatusEventData(
                room_id=room_id,
                field=field,
                old_value=old_value,
                new_value=new_value,
                changed_by=actor,
            ).to_dict(),
            source="housekeeping_service",
            actor=actor,
        ))

    def update_housekeeping_field(
        self,
        room_id: str,
        field: str,
        value: Any,
        acting_user: Optional[str] = None,
        local_state: Optional[OptimisticCollection] = None,
    ) -> OperationResult:
        """
        修改房态的单个字段（status / assigned_staff / priority），其他字段保持不变

        Returns:
            OperationResult，data 为 RoomStatusRecord
        """
        if not self.catalog.has_room(room_id):
            return OperationResult.failure(CODE_NOT_FOUND, f"Unknown room '{room_id}'.")
        clean_value, reason = self._validate_field(field, value)
        if reason:
            return OperationResult.failure(CODE_VALIDATION, reason)

        try:
            row = self.db.query(RoomStatus).filter(RoomStatus.room_id == room_id).with_for_update().first()
            if row is None:
                row = RoomStatus(room_id=room_id, status=HousekeepingStatus.CLEAN.value, assigned_staff=UNASSIGNED)
                self.db.add(row)
            old_value = getattr(row, field)
            setattr(row, field, clean_value)
            row.updated_at = datetime.now()
            row.updated_by = acting_user
            if local_state is not None:
                local_state.apply_pending(room_id, row.to_record())
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            if local_state is not None:
                local_state.rollback(room_id, str(e))
            return normalize_error(e, "update_housekeeping_field")

        record = row.to_record()
        if local_state is not None:
            local_state.confirm(room_id, record)
        logger.info(f"Room {room_id} {field}: {old_value!r} -> {clean_value!r} by {acting_user or 'unknown'}")
        self._publish(EventType.ROOM_STATUS_CHANGED, room_id, field, old_value, clean_value, acting_user)
        return OperationResult.success(record)

    def mark_room_clean(
        self,
        room_id: str,
        acting_user: Optional[str] = None,
        local_state: Optional[OptimisticCollection] = None,
    ) -> OperationResult:
        """重置为标准基线：clean / Unassigned / 优先级 3"""
        if not self.catalog.has_room(room_id):
            return OperationResult.failure(CODE_NOT_FOUND, f"Unknown room '{room_id}'.")

        baseline = RoomStatusRecord.clean_baseline(room_id, updated_at=datetime.now())
        if local_state is not None:
            local_state.apply_pending(room_id, baseline)
        try:
            row = self.db.query(RoomStatus).filter(RoomStatus.room_id == room_id).with_for_update().first()
            old_status = row.status if row else None
            if row is None:
                row = RoomStatus(room_id=room_id)
                self.db.add(row)
            row.status = baseline.status
            row.assigned_staff = baseline.assigned_staff
            row.priority = baseline.priority
            row.updated_at = baseline.updated_at
            row.updated_by = acting_user
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            if local_state is not None:
                local_state.rollback(room_id, str(e))
            return normalize_error(e, "mark_room_clean")

        record = row.to_record()
        if local_state is not None:
            local_state.confirm(room_id, record)
        logger.info(f"Room {room_id} marked clean by {acting_user or 'unknown'}")
        self._publish(EventType.ROOM_MARKED_CLEAN, room_id, "status", old_status, record.status, acting_user)
        return OperationResult.success(record)

    # ============== 保洁计划 ==============

    def _bookings(self):
        return [b.to_record() for b in self.db.query(Booking).all()]

    def cleaning_tasks(self, target_date: Any) -> List[RoomTask]:
        """目标日需要清洁的房间"""
        return build_cleaning_tasks(target_date, self._bookings(), self.get_room_statuses(), self.catalog)

    def cleaning_plan(self, target_date: Any) -> CleaningPlan:
        return split_by_priority(self.cleaning_tasks(target_date))

    def cleaning_message(self, target_date: Any) -> str:
        """可复制分发的保洁消息"""
        return format_cleaning_message(target_date, self.cleaning_tasks(target_date), self.catalog)

    def day_summary(self, target_date: Any) -> DaySummary:
        return day_summary(target_date, self._bookings())
