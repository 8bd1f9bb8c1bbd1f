"""
报表路由
"""
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kolab.config import get_catalog
from kolab.database import get_db
from kolab.models.schemas import DashboardResponse
from kolab.services.report_service import ReportService
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import parse_date

router = APIRouter(prefix="/reports", tags=["报表"])


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    today: Optional[str] = None,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """仪表盘统计：近 6 个月收入、分房产收入、本月入住率、平均提前预订天数"""
    stats = ReportService(db, catalog).get_dashboard_stats(parse_date(today))
    return asdict(stats)
