"""
预订冲突检测测试
"""
from datetime import date

from kolab_core.domain.conflicts import check_conflict, conflict_reason, room_options
from kolab_core.domain.records import Booking
from kolab_core.domain.stays import INVALID_DATE_ORDER_REASON, MISSING_DATES_REASON


def _booking(booking_id, check_in, check_out, room_id="R1", guest_name="Guest", status="confirmed"):
    return {
        "id": booking_id,
        "room_id": room_id,
        "guest_name": guest_name,
        "check_in": check_in,
        "check_out": check_out,
        "status": status,
    }


class TestCheckConflict:
    """冲突检测"""

    def test_back_to_back_is_not_a_conflict(self):
        existing = [_booking("a", "2024-03-01", "2024-03-05")]
        result = check_conflict(_booking(None, "2024-03-05", "2024-03-08"), existing)
        assert result.conflict is False
        assert not result

    def test_back_to_back_before_existing(self):
        existing = [_booking("a", "2024-03-05", "2024-03-08")]
        result = check_conflict(_booking(None, "2024-03-01", "2024-03-05"), existing)
        assert result.conflict is False

    def test_overlap_reports_first_match_in_input_order(self):
        existing = [
            _booking("late", "2024-03-02", "2024-03-04", guest_name="Bob"),
            _booking("wide", "2024-03-01", "2024-03-10", guest_name="Carol"),
        ]
        result = check_conflict(_booking(None, "2024-03-03", "2024-03-05"), existing)
        assert result.conflict is True
        assert result.conflicting_booking.id == "late"
        assert "Bob" in result.reason

    def test_enclosing_interval_conflicts(self):
        existing = [_booking("a", "2024-03-03", "2024-03-04")]
        assert check_conflict(_booking(None, "2024-03-01", "2024-03-10"), existing).conflict

    def test_scenario_rejects_overlap_and_accepts_turnover(self):
        existing = [_booking("g1", "2024-03-01", "2024-03-05", guest_name="G1")]

        rejected = check_conflict(_booking(None, "2024-03-04", "2024-03-06"), existing)
        assert rejected.conflict is True
        assert rejected.conflicting_booking.guest_name == "G1"
        assert rejected.reason == "Room is booked by G1 from 2024-03-01 to 2024-03-05."

        accepted = check_conflict(_booking(None, "2024-03-05", "2024-03-08"), existing)
        assert accepted.conflict is False

    def test_ignores_cancelled_other_rooms_and_excluded_id(self):
        existing = [
            _booking("cancelled", "2024-03-01", "2024-03-05", status="cancelled"),
            _booking("other-room", "2024-03-01", "2024-03-05", room_id="R2"),
            _booking("self", "2024-03-01", "2024-03-05"),
        ]
        result = check_conflict(_booking("self", "2024-03-02", "2024-03-04"), existing, exclude_id="self")
        assert result.conflict is False

    def test_invalid_date_order_rejected(self):
        result = check_conflict(_booking(None, "2024-03-05", "2024-03-05"), [])
        assert result.conflict is True
        assert result.reason == INVALID_DATE_ORDER_REASON

    def test_missing_dates_rejected(self):
        result = check_conflict(_booking(None, "not-a-date", "2024-03-05"), [])
        assert result.conflict is True
        assert result.reason == MISSING_DATES_REASON

    def test_accepts_plain_records(self):
        existing = [Booking(id="a", room_id="R1", guest_name="Ann",
                            check_in=date(2024, 3, 1), check_out=date(2024, 3, 5))]
        candidate = Booking(id=None, room_id="R1", check_in=date(2024, 3, 4), check_out=date(2024, 3, 6))
        assert check_conflict(candidate, existing).conflicting_booking is existing[0]

    def test_conflict_reason_format(self):
        booking = Booking(id="a", room_id="R1", guest_name="Ann",
                          check_in=date(2024, 3, 1), check_out=date(2024, 3, 5))
        assert conflict_reason(booking) == "Room is booked by Ann from 2024-03-01 to 2024-03-05."


class TestRoomOptions:
    """预订表单房间选项"""

    def test_labels(self, catalog):
        bookings = [
            _booking("now", "2024-03-01", "2024-03-10", room_id="T1"),
            _booking("later", "2024-04-01", "2024-04-03", room_id="T2"),
            _booking("gone", "2024-03-01", "2024-03-10", room_id="T3", status="cancelled"),
        ]
        options = {o.room_id: o for o in room_options(catalog, bookings, "2024-03-05")}

        assert options["T1"].display_status == "Occupied"
        assert options["T1"].is_occupied is True
        assert options["T2"].display_status == "Future Bookings"
        assert options["T3"].display_status == "Open"
        assert options["T1"].label == "T1 (Occupied)"

    def test_catalog_order(self, catalog):
        assert [o.room_id for o in room_options(catalog, [], "2024-03-05")] == ["T1", "T2", "T3", "N1", "N2"]

    def test_editing_booking_does_not_mark_its_room_occupied(self, catalog):
        bookings = [_booking("now", "2024-03-01", "2024-03-10", room_id="T1")]
        options = {o.room_id: o for o in room_options(catalog, bookings, "2024-03-05", editing_id="now")}
        assert options["T1"].is_occupied is False
        assert options["T1"].display_status == "Future Bookings"
