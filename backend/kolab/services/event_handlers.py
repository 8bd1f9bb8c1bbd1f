"""
事件处理器 - 订阅领域事件并执行后续业务逻辑
"""
from typing import Callable
import logging

from sqlalchemy.exc import SQLAlchemyError

from kolab.database import SessionLocal
from kolab.models.events import EventType
from kolab.models.ontology import Booking
from kolab_core.engine.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


class EventHandlers:
    """
    事件处理器集合

    支持依赖注入以便于测试：
    - db_session_factory: 数据库会话工厂
    - guest_service_factory: 客人服务工厂
    """

    def __init__(self, db_session_factory: Callable = None, guest_service_factory: Callable = None):
        self._db_session_factory = db_session_factory or SessionLocal
        self._guest_service_factory = guest_service_factory
        self._registered = False

    def _get_db(self):
        return self._db_session_factory()

    def _get_guest_service(self, db):
        if self._guest_service_factory:
            return self._guest_service_factory(db)
        from kolab.services.guest_service import GuestService
        return GuestService(db)

    def handle_booking_checked_out(self, event: Event) -> None:
        """
        处理退房事件：把这次住宿计入客人统计

        触发条件：预订状态进入 checked-out
        业务逻辑：按预订 ID 幂等累加客人的住宿次数与总晚数
        """
        booking_id = event.data.get("booking_id")
        if not booking_id:
            logger.warning("Invalid checkout event: missing booking_id")
            return

        db = self._get_db()
        try:
            booking = db.query(Booking).filter(Booking.id == booking_id).first()
            if booking is None:
                logger.warning(f"Checked-out booking {booking_id} no longer exists")
                return
            record = booking.to_record()
            db.commit()

            result = self._get_guest_service(db).update_guest_stats_from_booking(record)
            if not result.ok:
                logger.warning(f"Guest stats not updated for booking {booking_id}: {result.message}")
            elif result.data.get("already_counted"):
                logger.info(f"Booking {booking_id} already counted toward guest stats")
            else:
                logger.info(
                    f"Guest {result.data['guest_id']} stats updated: "
                    f"{result.data['stay_count']} stays, {result.data['lifetime_nights']} nights"
                )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update guest stats for booking {booking_id}: {e}", exc_info=True)
        finally:
            db.close()

    def register_handlers(self, event_bus_instance=None) -> None:
        """注册所有事件处理器"""
        if self._registered:
            return

        bus = event_bus_instance or event_bus
        bus.subscribe(EventType.BOOKING_CHECKED_OUT.value, self.handle_booking_checked_out)

        self._registered = True
        logger.info("Event handlers registered successfully")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """取消注册所有事件处理器（用于测试）"""
        bus = event_bus_instance or event_bus
        bus.unsubscribe(EventType.BOOKING_CHECKED_OUT.value, self.handle_booking_checked_out)

        self._registered = False
        logger.info("Event handlers unregistered")


# 全局事件处理器实例
event_handlers = EventHandlers()


def register_event_handlers() -> None:
    """应用启动时注册"""
    event_handlers.register_handlers()
