"""
客人服务测试
"""
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from kolab.models.ontology import Booking, Guest
from kolab.services.guest_service import GuestService
from kolab_core.domain import records


@pytest.fixture
def service(db_session, recorder):
    return GuestService(db_session, event_publisher=recorder)


def _draft(**overrides):
    data = {"guest_name": "Alice Nguyen", "email": "alice@example.com", "channel": "airbnb"}
    data.update(overrides)
    return data


class TestResolveGuest:
    """客人解析"""

    def test_new_guest_is_created(self, service, db_session, recorder):
        result = service.resolve_guest_for_booking(_draft(phone="+84 (90) 123-4567"))

        resolution = result.data
        assert result.ok
        assert resolution.created is True
        assert resolution.is_returning_guest is False
        assert resolution.guest["stay_count"] == 0
        assert resolution.guest["phone_norm"] == "84901234567"
        assert resolution.guest["source_channels"] == ["airbnb"]
        assert db_session.query(Guest).count() == 1
        assert recorder.types == ["guest.created"]

    def test_email_match_is_case_insensitive(self, service, db_session):
        first = service.resolve_guest_for_booking(_draft()).data

        second = service.resolve_guest_for_booking(_draft(email="  ALICE@Example.COM ")).data

        assert second.guest_id == first.guest_id
        assert second.created is False
        assert second.match_reason == "matchedByEmail"
        assert db_session.query(Guest).count() == 1

    def test_phone_match(self, service):
        first = service.resolve_guest_for_booking(_draft(email=None, phone="090 111 2222")).data
        second = service.resolve_guest_for_booking(_draft(email=None, phone="(090)-111-2222")).data
        assert second.guest_id == first.guest_id
        assert second.match_reason == "matchedByPhone"

    def test_name_match_requires_opt_in(self, service, db_session):
        service.resolve_guest_for_booking(_draft(email=None))

        service.resolve_guest_for_booking(_draft(email=None, guest_name="alice   NGUYEN"))
        assert db_session.query(Guest).count() == 2

        matched = service.resolve_guest_for_booking(_draft(email=None), allow_name_match=True).data
        assert matched.match_reason == "matchedByName"
        assert db_session.query(Guest).count() == 2

    def test_missing_contact_fields_are_filled_not_overwritten(self, service, db_session):
        guest_id = service.resolve_guest_for_booking(_draft()).data.guest_id

        service.resolve_guest_for_booking(_draft(guest_name="A. Nguyen", phone="0901", channel="direct"))

        guest = db_session.query(Guest).filter(Guest.id == guest_id).one()
        assert guest.full_name == "Alice Nguyen"
        assert guest.phone == "0901"
        assert guest.phone_norm == "0901"
        assert guest.source_channels == ["airbnb", "direct"]

    def test_returning_by_stay_count(self, service, db_session):
        guest_id = service.resolve_guest_for_booking(_draft()).data.guest_id
        db_session.query(Guest).filter(Guest.id == guest_id).one().stay_count = 2
        db_session.commit()

        resolution = service.resolve_guest_for_booking(_draft()).data

        assert resolution.is_returning_guest is True
        assert resolution.returning_reason == "stayCount>=1"

    def test_returning_by_prior_completed_stay(self, service, db_session):
        guest_id = service.resolve_guest_for_booking(_draft()).data.guest_id
        db_session.add(Booking(id="old", room_id="T1", guest_name="Alice Nguyen", guest_id=guest_id,
                               check_in=date(2024, 1, 1), check_out=date(2024, 1, 10), status="checked-out"))
        db_session.commit()

        later = service.resolve_guest_for_booking(_draft(check_in="2024-02-01")).data
        overlapping = service.preview_returning_guest(email="alice@example.com", check_in="2024-01-05").data

        assert later.returning_reason == "priorCompletedStay"
        assert overlapping.is_returning_guest is False
        assert overlapping.returning_reason == "matchedByEmail"


class TestPreview:
    """只读预览"""

    def test_no_match_returns_none_without_writing(self, service, db_session):
        result = service.preview_returning_guest(email="nobody@example.com")
        assert result.ok
        assert result.data is None
        assert db_session.query(Guest).count() == 0

    def test_match(self, service):
        guest_id = service.resolve_guest_for_booking(_draft()).data.guest_id
        preview = service.preview_returning_guest(email="ALICE@example.com").data
        assert preview.guest_id == guest_id
        assert preview.to_dict()["normalized"]["email_norm"] == "alice@example.com"


class TestGuestStats:
    """住宿统计"""

    def _stay(self, guest_id, booking_id="b1"):
        return records.Booking(id=booking_id, room_id="T1", guest_id=guest_id,
                               check_in=date(2024, 3, 1), check_out=date(2024, 3, 5),
                               status="checked-out")

    def test_stats_are_counted_once(self, service, db_session, recorder):
        guest_id = service.resolve_guest_for_booking(_draft()).data.guest_id

        first = service.update_guest_stats_from_booking(self._stay(guest_id))
        second = service.update_guest_stats_from_booking(self._stay(guest_id))

        assert first.data == {"already_counted": False, "guest_id": guest_id, "stay_count": 1, "lifetime_nights": 4}
        assert second.ok
        assert second.data == {"already_counted": True}
        guest = db_session.query(Guest).filter(Guest.id == guest_id).one()
        assert guest.stay_count == 1
        assert guest.last_stay_end == date(2024, 3, 5)
        assert guest.last_booking_id == "b1"
        assert len(recorder.of_type("guest.stats_updated")) == 1

    def test_second_stay_accumulates(self, service):
        guest_id = service.resolve_guest_for_booking(_draft()).data.guest_id
        service.update_guest_stats_from_booking(self._stay(guest_id, "b1"))
        result = service.update_guest_stats_from_booking(self._stay(guest_id, "b2"))
        assert result.data["stay_count"] == 2
        assert result.data["lifetime_nights"] == 8

    def test_missing_guest_link(self, service):
        result = service.update_guest_stats_from_booking(self._stay(None))
        assert result.code == "validation"
        assert result.message == "Missing guestId on booking"

    def test_unknown_guest(self, service):
        assert service.update_guest_stats_from_booking(self._stay("ghost")).code == "not-found"


class TestGuestDirectory:
    """客人列表与编辑"""

    def test_search_and_update(self, service):
        guest_id = service.resolve_guest_for_booking(_draft()).data.guest_id
        service.resolve_guest_for_booking(_draft(guest_name="Bob Tran", email="bob@example.com"))

        assert [g.full_name for g in service.list_guests(search="bob")] == ["Bob Tran"]
        assert len(service.list_guests()) == 2

        result = service.update_guest(guest_id, {"tags": ["vip"], "notes": "quiet room"})
        assert result.data.tags == ["vip"]
        assert result.data.notes == "quiet room"

    def test_update_unknown_guest(self, service):
        assert service.update_guest("ghost", {"notes": "x"}).code == "not-found"


def test_store_failure_is_normalized(service, db_session):
    with patch.object(db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
        result = service.resolve_guest_for_booking(_draft())

    assert result.ok is False
    assert result.code == "store-error"
    assert result.is_retryable
    assert db_session.query(Guest).count() == 0
