"""
持久化对象定义

每个集合一张表；record ID 为随机 base-36 字符串。
to_record() 把行转换为 kolab_core 的纯记录类型，业务规则只作用于纯记录。
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date,
    ForeignKey, Text, Boolean, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship

from kolab.database import Base, new_id
from kolab_core.domain import records


def _now() -> datetime:
    return datetime.now()


class Booking(Base):
    """
    预订对象
    入住区间为半开区间 [check_in, check_out)
    """
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=new_id)
    room_id = Column(String(32), nullable=False, index=True)
    guest_name = Column(String(200), nullable=False)
    email = Column(String(200))
    phone = Column(String(50))
    check_in = Column(Date, nullable=False, index=True)
    check_out = Column(Date, nullable=False)
    status = Column(String(20), default=records.BookingStatus.CONFIRMED.value, index=True)
    price = Column(Float, default=0)                     # 总价
    nightly_price = Column(Float)                        # 每晚价格
    nights = Column(Integer, default=0)
    stay_category = Column(String(10))                   # short / medium / long
    is_long_term = Column(Boolean, default=False)
    weekly_cleaning_day = Column(String(10))             # 仅中长住
    early_check_in = Column(Boolean, default=False)
    channel = Column(String(20), default=records.BookingChannel.AIRBNB.value)
    payment_status = Column(String(10))                  # 仅 direct 渠道
    guest_id = Column(String(32), ForeignKey("guests.id"), index=True)
    notes = Column(Text, default="")
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)
    created_by = Column(String(100))
    updated_by = Column(String(100))

    guest = relationship("Guest", back_populates="bookings")

    def to_record(self) -> records.Booking:
        return records.Booking(
            id=self.id,
            room_id=self.room_id,
            guest_name=self.guest_name or "",
            email=self.email,
            phone=self.phone,
            check_in=self.check_in,
            check_out=self.check_out,
            status=self.status,
            price=self.price or 0.0,
            nightly_price=self.nightly_price,
            nights=self.nights or 0,
            stay_category=self.stay_category,
            is_long_term=bool(self.is_long_term),
            weekly_cleaning_day=self.weekly_cleaning_day,
            early_check_in=bool(self.early_check_in),
            channel=self.channel,
            payment_status=self.payment_status,
            guest_id=self.guest_id,
            notes=self.notes or "",
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class RoomStatus(Base):
    """房间保洁状态（按房间 ID 存储，房间本身来自目录）"""
    __tablename__ = "room_statuses"

    room_id = Column(String(32), primary_key=True)
    status = Column(String(20), default=records.HousekeepingStatus.CLEAN.value)
    assigned_staff = Column(String(100), default=records.UNASSIGNED)
    priority = Column(Integer)                           # 人工优先级，空表示未覆盖
    updated_at = Column(DateTime, default=_now, onupdate=_now)
    updated_by = Column(String(100))

    def to_record(self) -> records.RoomStatusRecord:
        return records.RoomStatusRecord(
            room_id=self.room_id,
            status=self.status or records.HousekeepingStatus.CLEAN.value,
            assigned_staff=self.assigned_staff or records.UNASSIGNED,
            priority=self.priority,
            updated_at=self.updated_at,
        )


class MaintenanceIssue(Base):
    """维修问题"""
    __tablename__ = "maintenance_issues"

    id = Column(String(32), primary_key=True, default=new_id)
    location_id = Column(String(32), nullable=False, index=True)
    location_name = Column(String(100))
    property_name = Column(String(100))
    description = Column(Text, nullable=False)
    status = Column(String(20), default=records.IssueStatus.OPEN.value, index=True)
    assigned_staff = Column(String(100), default=records.UNASSIGNED)
    template_id = Column(String(32), index=True)        # 来源周期模板
    is_recurring = Column(Boolean, default=False)
    due_date = Column(Date)
    reported_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)
    reported_by = Column(String(100))

    def to_record(self) -> records.MaintenanceIssue:
        return records.MaintenanceIssue(
            id=self.id,
            location_id=self.location_id,
            description=self.description,
            status=self.status,
            assigned_staff=self.assigned_staff or records.UNASSIGNED,
            template_id=self.template_id,
            is_recurring=bool(self.is_recurring),
            location_name=self.location_name,
            property_name=self.property_name,
            due_date=self.due_date,
            reported_at=self.reported_at,
            updated_at=self.updated_at,
        )


class RecurringTask(Base):
    """周期维修模板"""
    __tablename__ = "recurring_tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    description = Column(Text, nullable=False)
    location_id = Column(String(32), nullable=False)
    frequency = Column(String(20), default="monthly")
    next_due = Column(Date)
    created_at = Column(DateTime, default=_now)

    def to_record(self) -> records.RecurringTask:
        return records.RecurringTask(
            id=self.id,
            description=self.description,
            location_id=self.location_id,
            frequency=self.frequency,
            next_due=self.next_due,
        )


class Guest(Base):
    """
    客人对象 - 每个真实客人一条
    *_norm 字段为规范化联系方式，建索引用于点查
    """
    __tablename__ = "guests"

    id = Column(String(32), primary_key=True, default=new_id)
    full_name = Column(String(200), nullable=False)
    name_norm = Column(String(200), index=True)
    email = Column(String(200))
    email_norm = Column(String(200), index=True)
    phone = Column(String(50))
    phone_norm = Column(String(50), index=True)
    tags = Column(JSON, default=list)
    notes = Column(Text, default="")
    stay_count = Column(Integer, default=0)
    lifetime_nights = Column(Integer, default=0)
    last_stay_end = Column(Date)
    source_channels = Column(JSON, default=list)
    last_booking_id = Column(String(32))
    status = Column(String(20), default="active")
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    bookings = relationship("Booking", back_populates="guest")
    counted_stays = relationship("GuestCountedStay", back_populates="guest")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "name_norm": self.name_norm,
            "email": self.email,
            "email_norm": self.email_norm,
            "phone": self.phone,
            "phone_norm": self.phone_norm,
            "tags": list(self.tags or []),
            "notes": self.notes or "",
            "stay_count": self.stay_count or 0,
            "lifetime_nights": self.lifetime_nights or 0,
            "last_stay_end": self.last_stay_end.isoformat() if self.last_stay_end else None,
            "source_channels": list(self.source_channels or []),
            "last_booking_id": self.last_booking_id,
            "status": self.status,
        }


class GuestCountedStay(Base):
    """
    已计入客人统计的住宿台账
    booking_id 唯一，保证同一住宿只计数一次
    """
    __tablename__ = "guest_counted_stays"
    __table_args__ = (UniqueConstraint("booking_id", name="uq_guest_counted_stays_booking"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    guest_id = Column(String(32), ForeignKey("guests.id"), nullable=False, index=True)
    booking_id = Column(String(32), nullable=False)
    nights = Column(Integer, default=0)
    counted_at = Column(DateTime, default=_now)

    guest = relationship("Guest", back_populates="counted_stays")
