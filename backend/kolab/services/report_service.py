"""
报表服务 - 提供经营数据统计
"""
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from kolab.models.ontology import Booking
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.stats import DashboardStats, dashboard_stats


class ReportService:
    """报表服务"""

    def __init__(self, db: Session, catalog: PropertyCatalog):
        self.db = db
        self.catalog = catalog

    def get_dashboard_stats(self, today: Any = None) -> DashboardStats:
        """获取仪表盘统计数据"""
        bookings = [b.to_record() for b in self.db.query(Booking).all()]
        return dashboard_stats(bookings, self.catalog, today or date.today())
