"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field, ConfigDict

from kolab_core.domain.records import BookingStatus, BookingChannel, PaymentStatus, StayCategory


# ============== 房间 Schemas ==============

class RoomResponse(BaseModel):
    id: str
    name: str
    type: str
    property_id: str
    property_name: str
    model_config = ConfigDict(from_attributes=True)


class LocationResponse(RoomResponse):
    location_type: str


class RoomOptionResponse(BaseModel):
    room_id: str
    name: str
    type: str
    property_id: str
    property_name: str
    display_status: str
    is_occupied: bool
    label: str
    model_config = ConfigDict(from_attributes=True)


# ============== 预订 Schemas ==============

class BookingBase(BaseModel):
    room_id: str = Field(..., max_length=32)
    guest_name: str = Field(..., max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    check_in: date
    check_out: date
    status: BookingStatus = BookingStatus.CONFIRMED
    price: float = Field(default=0, ge=0)
    nightly_price: Optional[float] = Field(None, ge=0)
    stay_category: Optional[StayCategory] = None
    weekly_cleaning_day: Optional[str] = None
    early_check_in: bool = False
    channel: BookingChannel = BookingChannel.AIRBNB
    payment_status: Optional[PaymentStatus] = None
    notes: str = ""


class BookingCreate(BookingBase):
    allow_name_match: bool = False


class BookingResponse(BaseModel):
    id: str
    room_id: str
    guest_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    check_in: date
    check_out: date
    status: str
    price: float = 0
    nightly_price: Optional[float] = None
    nights: int = 0
    stay_category: Optional[str] = None
    is_long_term: bool = False
    weekly_cleaning_day: Optional[str] = None
    early_check_in: bool = False
    channel: str
    payment_status: Optional[str] = None
    guest_id: Optional[str] = None
    notes: Optional[str] = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ConflictCheckRequest(BaseModel):
    room_id: str
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    exclude_id: Optional[str] = None


class ConflictCheckResponse(BaseModel):
    conflict: bool
    reason: Optional[str] = None
    conflicting_booking: Optional[BookingResponse] = None


# ============== 客人 Schemas ==============

class GuestResponse(BaseModel):
    id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    tags: List[str] = []
    notes: Optional[str] = ""
    stay_count: int = 0
    lifetime_nights: int = 0
    last_stay_end: Optional[date] = None
    source_channels: List[str] = []
    last_booking_id: Optional[str] = None
    status: str = "active"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class GuestUpdate(BaseModel):
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    status: Optional[Literal["active", "inactive", "blocked"]] = None


class GuestLookupRequest(BaseModel):
    guest_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    channel: Optional[BookingChannel] = None
    check_in: Optional[date] = None
    allow_name_match: bool = False


class GuestResolutionResponse(BaseModel):
    guest_id: str
    guest: Dict[str, Any]
    is_returning_guest: bool
    returning_reason: Optional[str] = None
    normalized: Dict[str, Optional[str]]
    created: bool = False
    match_reason: Optional[str] = None


# ============== 保洁 Schemas ==============

class RoomStatusResponse(BaseModel):
    room_id: str
    status: str
    assigned_staff: str
    priority: Optional[int] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class HousekeepingFieldUpdate(BaseModel):
    field: Literal["status", "assigned_staff", "priority"]
    value: Any = None


class RoomTaskResponse(BaseModel):
    room_id: str
    room_name: str
    room_type: str
    property_id: str
    property_name: str
    status: str
    stored_status: str
    assigned_staff: str
    priority: int
    computed_priority: int
    has_priority_override: bool
    is_checkout: bool
    is_weekly_service_clean: bool
    is_arrival: bool
    has_early_check_in: bool
    checkout_booking_id: Optional[str] = None
    arrival_booking_id: Optional[str] = None
    weekly_booking_id: Optional[str] = None
    label: str
    date: str
    model_config = ConfigDict(from_attributes=True)


class CleaningPlanResponse(BaseModel):
    high: List[RoomTaskResponse]
    normal: List[RoomTaskResponse]
    low: List[RoomTaskResponse]


class DaySummaryResponse(BaseModel):
    check_ins: int
    early_check_ins: int
    check_outs: int
    weekly_cleans: int
    rooms_to_clean: int
    date: str
    model_config = ConfigDict(from_attributes=True)


# ============== 维修 Schemas ==============

class MaintenanceIssueCreate(BaseModel):
    location_id: str
    description: str = Field(..., min_length=1)
    status: Literal["open", "in-progress", "completed"] = "open"
    assigned_staff: str = "Unassigned"


class MaintenanceIssueResponse(BaseModel):
    id: str
    location_id: str
    location_name: Optional[str] = None
    property_name: Optional[str] = None
    description: str
    status: str
    assigned_staff: Optional[str] = None
    template_id: Optional[str] = None
    is_recurring: bool = False
    due_date: Optional[date] = None
    reported_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class RecurringTaskCreate(BaseModel):
    description: str = Field(..., min_length=1)
    location_id: str
    frequency: Literal["monthly"] = "monthly"
    next_due: date


class RecurringTaskResponse(BaseModel):
    id: str
    description: str
    location_id: str
    frequency: str
    next_due: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 报表 Schemas ==============

class MonthlyRevenueResponse(BaseModel):
    year: int
    month: int
    label: str
    revenue: float
    model_config = ConfigDict(from_attributes=True)


class DashboardResponse(BaseModel):
    monthly_revenue: List[MonthlyRevenueResponse]
    revenue_by_property: Dict[str, float]
    occupancy_rate: int
    avg_lead_time: int
    active_bookings: int
    model_config = ConfigDict(from_attributes=True)
