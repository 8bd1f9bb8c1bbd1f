"""
预订服务测试
"""
from datetime import date

import pytest

from kolab.models.ontology import Guest
from kolab.services.booking_service import SAVE_NOT_CONFIRMED, BookingService
from kolab_core.domain.stays import INVALID_DATE_ORDER_REASON, MISSING_PAYMENT_REASON
from kolab_core.sync.optimistic import OptimisticCollection


def _draft(**overrides):
    data = {
        "room_id": "T1",
        "guest_name": "Alice Nguyen",
        "email": "Alice@Example.com ",
        "check_in": "2024-03-01",
        "check_out": "2024-03-05",
        "price": 400,
    }
    data.update(overrides)
    return data


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


class TestSaveBooking:
    """保存预订"""

    @pytest.fixture
    def service(self, db_session, catalog, recorder):
        return BookingService(db_session, catalog, event_publisher=recorder)

    def test_create_normalizes_and_links_guest(self, service, db_session, recorder):
        result = service.save_booking(_draft(), acting_user="mai")

        assert result.ok
        row = result.data
        assert row.nights == 4
        assert row.stay_category == "short"
        assert row.email == "Alice@Example.com"
        assert row.created_by == "mai"
        guest = db_session.query(Guest).filter(Guest.id == row.guest_id).one()
        assert guest.email_norm == "alice@example.com"
        assert guest.stay_count == 0
        assert recorder.types == ["guest.created", "booking.created"]
        assert recorder.events[-1].data["check_in"] == "2024-03-01"

    def test_medium_stay_keeps_weekly_day(self, service):
        row = service.save_booking(_draft(check_out="2024-03-11", weekly_cleaning_day="Monday")).data
        assert row.stay_category == "medium"
        assert row.is_long_term is True
        assert row.weekly_cleaning_day == "monday"

    def test_overlap_is_rejected(self, service):
        first = service.save_booking(_draft()).data

        result = service.save_booking(_draft(guest_name="Bob", email=None, check_in="2024-03-03",
                                             check_out="2024-03-06"))

        assert result.ok is False
        assert result.code == "conflict"
        assert result.message == "Room is booked by Alice Nguyen from 2024-03-01 to 2024-03-05."
        assert result.extra["conflicting_booking"].id == first.id

    def test_rejected_save_writes_no_guest_data(self, service, db_session, recorder):
        service.save_booking(_draft())

        new_guest = service.save_booking(_draft(guest_name="Bob", email="bob@example.com",
                                                check_in="2024-03-04", check_out="2024-03-06"))
        same_guest = service.save_booking(_draft(phone="+1 555 0100", channel="direct", payment_status="paid",
                                                 check_in="2024-03-02", check_out="2024-03-03"))

        assert new_guest.code == "conflict"
        assert same_guest.code == "conflict"
        assert db_session.query(Guest).count() == 1
        guest = db_session.query(Guest).one()
        assert guest.phone is None
        assert guest.source_channels == ["airbnb"]
        assert recorder.types == ["guest.created", "booking.created"]

    def test_same_day_turnover_is_allowed(self, service):
        service.save_booking(_draft())
        result = service.save_booking(_draft(guest_name="Bob", email=None, check_in="2024-03-05",
                                             check_out="2024-03-08"))
        assert result.ok

    def test_other_room_is_independent(self, service):
        service.save_booking(_draft())
        assert service.save_booking(_draft(room_id="T2", guest_name="Bob", email=None)).ok

    def test_cancelled_booking_does_not_block(self, service):
        assert service.save_booking(_draft(status="cancelled")).ok
        assert service.save_booking(_draft(guest_name="Bob", email=None)).ok

    def test_edit_does_not_conflict_with_itself(self, service, db_session):
        row = service.save_booking(_draft()).data

        result = service.save_booking(_draft(check_in="2024-03-02"), existing_id=row.id)

        assert result.ok
        assert result.data.nights == 3
        assert db_session.query(Guest).count() == 1

    def test_invalid_date_order(self, service):
        result = service.save_booking(_draft(check_out="2024-03-01"))
        assert result.code == "validation"
        assert result.message == INVALID_DATE_ORDER_REASON

    def test_unknown_room(self, service):
        result = service.save_booking(_draft(room_id="Z9"))
        assert result.code == "validation"
        assert result.message == "Unknown room 'Z9'."

    def test_direct_booking_needs_payment_status(self, service):
        result = service.save_booking(_draft(channel="direct"))
        assert result.message == MISSING_PAYMENT_REASON
        assert service.save_booking(_draft(channel="direct", payment_status="paid")).ok

    def test_edit_of_missing_booking(self, service):
        result = service.save_booking(_draft(), existing_id="nope")
        assert result.code == "not-found"

    def test_any_status_change_is_accepted(self, service, recorder):
        row = service.save_booking(_draft()).data

        result = service.save_booking(_draft(status="checked-out"), existing_id=row.id)

        assert result.ok
        assert result.data.status == "checked-out"
        checked_out = recorder.of_type("booking.checked_out")
        assert len(checked_out) == 1
        assert checked_out[0].data["previous_status"] == "confirmed"

        cancelled = service.save_booking(_draft(status="cancelled"), existing_id=row.id)
        assert cancelled.ok
        assert service.save_booking(_draft(status="pending"), existing_id=row.id).ok

    def test_check_out_flow_publishes_events(self, service, recorder):
        row = service.save_booking(_draft()).data
        service.save_booking(_draft(status="checked-in"), existing_id=row.id)
        result = service.save_booking(_draft(status="checked-out"), existing_id=row.id)

        assert result.ok
        checked_out = recorder.of_type("booking.checked_out")
        assert len(checked_out) == 1
        assert checked_out[0].data["previous_status"] == "checked-in"
        assert len(recorder.of_type("booking.status_changed")) == 2

    def test_guest_resolution_by_name_is_opt_in(self, service, db_session):
        service.save_booking(_draft(email=None))
        service.save_booking(_draft(email=None, room_id="T2"))
        assert db_session.query(Guest).count() == 2

        service.save_booking(_draft(email=None, room_id="T3"), allow_name_match=True)
        assert db_session.query(Guest).count() == 2


class TestLocalState:
    """乐观本地视图与写入确认"""

    def test_confirmed_save_replaces_pending(self, db_session, catalog, noop_publisher):
        service = BookingService(db_session, catalog, event_publisher=noop_publisher)
        local = OptimisticCollection()

        row = service.save_booking(_draft(), local_state=local).data

        assert not local.is_pending(row.id)
        assert local.get(row.id).check_in == date(2024, 3, 1)

    def test_conflict_leaves_local_state_untouched(self, db_session, catalog, noop_publisher):
        service = BookingService(db_session, catalog, event_publisher=noop_publisher)
        service.save_booking(_draft())
        local = OptimisticCollection()

        result = service.save_booking(_draft(id="bk2", guest_name="Bob", email=None), local_state=local)

        assert result.code == "conflict"
        assert "bk2" not in local
        assert local.pending_keys() == []

    def test_locked_recheck_rolls_back_local_change(self, db_session, catalog, noop_publisher):
        class StaleReads(BookingService):
            def _all_records(self, room_id=None):
                return []

        BookingService(db_session, catalog, event_publisher=noop_publisher).save_booking(_draft())
        service = StaleReads(db_session, catalog, event_publisher=noop_publisher)
        local = OptimisticCollection()

        result = service.save_booking(_draft(id="bk2", guest_name="Bob", email=None), local_state=local)

        assert result.code == "conflict"
        assert "bk2" not in local
        assert local.last_error("bk2") == result.message

    def test_unconfirmed_save_times_out(self, db_session, catalog, recorder):
        class NeverConfirmed(BookingService):
            def _read_back(self, booking_id):
                return None

        clock = FakeClock()
        service = NeverConfirmed(db_session, catalog, event_publisher=recorder,
                                 confirm_timeout=1, poll_interval=0.5, clock=clock, sleep=clock.sleep)
        local = OptimisticCollection()

        result = service.save_booking(_draft(id="bk1"), local_state=local)

        assert result.code == "confirm-timeout"
        assert result.message == SAVE_NOT_CONFIRMED
        assert result.is_retryable
        assert "bk1" not in local
        assert local.last_error("bk1") == SAVE_NOT_CONFIRMED
        assert recorder.of_type("booking.created") == []


class TestRemoveAndQueries:
    """删除与查询"""

    @pytest.fixture
    def service(self, db_session, catalog, recorder):
        return BookingService(db_session, catalog, event_publisher=recorder)

    def test_remove_booking(self, service, recorder):
        row = service.save_booking(_draft()).data
        local = OptimisticCollection({row.id: row.to_record()})

        result = service.remove_booking(row.id, local_state=local, acting_user="mai")

        assert result.ok
        assert result.data == {"id": row.id}
        assert service.get_booking(row.id) is None
        assert row.id not in local
        assert recorder.of_type("booking.deleted")[0].actor == "mai"

    def test_remove_missing_booking(self, service):
        assert service.remove_booking("nope").code == "not-found"

    def test_occupied_dates(self, service):
        row = service.save_booking(_draft()).data
        assert service.occupied_dates("T1") == ["2024-03-01", "2024-03-02", "2024-03-03", "2024-03-04"]
        assert service.occupied_dates("T1", exclude_id=row.id) == []

    def test_check_conflict_is_read_only(self, service):
        row = service.save_booking(_draft()).data
        candidate = {"room_id": "T1", "check_in": "2024-03-04", "check_out": "2024-03-06"}

        assert service.check_conflict(candidate).conflict is True
        assert service.check_conflict(candidate, exclude_id=row.id).conflict is False

    def test_room_options(self, service):
        row = service.save_booking(_draft()).data

        options = {o.room_id: o.display_status for o in service.room_options(today="2024-03-02")}
        assert options["T1"] == "Occupied"
        assert options["N1"] == "Open"

        editing = {o.room_id: o.display_status for o in service.room_options("2024-03-02", editing_id=row.id)}
        assert editing["T1"] == "Future Bookings"

    def test_list_bookings_filters(self, service):
        service.save_booking(_draft())
        service.save_booking(_draft(room_id="T2", status="pending"))

        assert [b.room_id for b in service.list_bookings(room_id="T2")] == ["T2"]
        assert [b.status for b in service.list_bookings(status="pending")] == ["pending"]
