"""
仪表盘统计测试
"""
from datetime import datetime

from kolab_core.domain.stats import UNKNOWN_PROPERTY, dashboard_stats, lead_time_days
from kolab_core.domain.records import Booking


def _bookings():
    return [
        {"id": "a", "room_id": "T1", "check_in": "2024-03-01", "check_out": "2024-03-11",
         "price": 1000, "nights": 10, "created_at": "2024-02-20T00:00:00"},
        {"id": "b", "room_id": "N1", "check_in": "2024-02-10", "check_out": "2024-02-12",
         "price": 200, "nights": 2},
        {"id": "c", "room_id": "T2", "check_in": "2024-03-05", "check_out": "2024-03-07",
         "price": 999, "nights": 2, "status": "cancelled"},
        {"id": "d", "room_id": "T3", "check_in": "2024-03-14", "check_out": "2024-03-20",
         "price": 0, "nights": 6},
        {"id": "e", "room_id": "ZZ", "check_in": "2023-12-01", "check_out": "2023-12-02",
         "price": 50, "nights": 1},
    ]


class TestDashboardStats:
    """仪表盘"""

    def test_monthly_revenue_last_six_months(self, catalog):
        stats = dashboard_stats(_bookings(), catalog, "2024-03-15")
        assert [(m.year, m.month) for m in stats.monthly_revenue] == [
            (2023, 10), (2023, 11), (2023, 12), (2024, 1), (2024, 2), (2024, 3),
        ]
        assert [m.revenue for m in stats.monthly_revenue] == [0, 0, 50, 0, 200, 1000]
        assert stats.monthly_revenue[-1].label == "Mar"

    def test_revenue_by_property(self, catalog):
        stats = dashboard_stats(_bookings(), catalog, "2024-03-15")
        assert stats.revenue_by_property == {"Townhouse": 1000.0, "Neighbours": 200.0, UNKNOWN_PROPERTY: 50.0}

    def test_occupancy_rate(self, catalog):
        # (10 + 6) / (5 rooms * 30) = 10.67%
        assert dashboard_stats(_bookings(), catalog, "2024-03-15").occupancy_rate == 11

    def test_lead_time_and_active(self, catalog):
        stats = dashboard_stats(_bookings(), catalog, "2024-03-15")
        assert stats.avg_lead_time == 10
        assert stats.active_bookings == 1

    def test_empty(self, catalog):
        stats = dashboard_stats([], catalog, "2024-03-15")
        assert stats.occupancy_rate == 0
        assert stats.avg_lead_time == 0
        assert len(stats.monthly_revenue) == 6

    def test_lead_time_days(self):
        booking = Booking.from_mapping({"id": "x", "room_id": "T1", "check_in": "2024-03-01",
                                        "check_out": "2024-03-02"})
        assert lead_time_days(booking) is None
        booking.created_at = datetime(2024, 2, 28, 12, 0)
        assert lead_time_days(booking) == 2
