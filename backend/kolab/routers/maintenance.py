"""
维修路由 - 维修问题与周期模板
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kolab.config import get_catalog
from kolab.database import get_db
from kolab.models.schemas import (
    MaintenanceIssueCreate, MaintenanceIssueResponse,
    RecurringTaskCreate, RecurringTaskResponse,
)
from kolab.routers.errors import raise_for_failure
from kolab.security.auth import get_acting_user
from kolab.services.maintenance_service import MaintenanceService
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import parse_date

router = APIRouter(prefix="/maintenance", tags=["维修"])


# ============== 维修问题 ==============

@router.get("/issues", response_model=List[MaintenanceIssueResponse])
def list_issues(
    issue_status: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """维修问题列表（最新的在前）"""
    return MaintenanceService(db, catalog).list_issues(status=issue_status)


@router.post("/issues", response_model=MaintenanceIssueResponse, status_code=status.HTTP_201_CREATED)
def create_issue(
    data: MaintenanceIssueCreate,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
    acting_user: Optional[str] = Depends(get_acting_user),
):
    """报告维修问题"""
    result = MaintenanceService(db, catalog).save_issue(data.model_dump(), acting_user=acting_user)
    raise_for_failure(result)
    return result.data


@router.put("/issues/{issue_id}", response_model=MaintenanceIssueResponse)
def update_issue(
    issue_id: str,
    data: MaintenanceIssueCreate,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
    acting_user: Optional[str] = Depends(get_acting_user),
):
    """更新维修问题"""
    result = MaintenanceService(db, catalog).save_issue(data.model_dump(), issue_id=issue_id, acting_user=acting_user)
    raise_for_failure(result)
    return result.data


@router.delete("/issues/{issue_id}")
def delete_issue(
    issue_id: str,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    result = MaintenanceService(db, catalog).delete_issue(issue_id)
    raise_for_failure(result)
    return result.data


# ============== 周期模板 ==============

@router.get("/recurring", response_model=List[RecurringTaskResponse])
def list_recurring_tasks(db: Session = Depends(get_db), catalog: PropertyCatalog = Depends(get_catalog)):
    """周期模板列表（按下次到期日）"""
    return MaintenanceService(db, catalog).list_recurring_tasks()


@router.post("/recurring", response_model=RecurringTaskResponse, status_code=status.HTTP_201_CREATED)
def create_recurring_task(
    data: RecurringTaskCreate,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """创建周期模板"""
    result = MaintenanceService(db, catalog).save_recurring_task(data.model_dump())
    raise_for_failure(result)
    return result.data


@router.post("/recurring/run", response_model=List[MaintenanceIssueResponse])
def run_recurring_check(
    today: Optional[str] = None,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """立即执行一次周期维修检查，返回新建的问题"""
    return MaintenanceService(db, catalog).ensure_recurring_issues(parse_date(today))


@router.put("/recurring/{task_id}", response_model=RecurringTaskResponse)
def update_recurring_task(
    task_id: str,
    data: RecurringTaskCreate,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    """更新周期模板"""
    result = MaintenanceService(db, catalog).save_recurring_task(data.model_dump(), task_id=task_id)
    raise_for_failure(result)
    return result.data


@router.delete("/recurring/{task_id}")
def delete_recurring_task(
    task_id: str,
    db: Session = Depends(get_db),
    catalog: PropertyCatalog = Depends(get_catalog),
):
    result = MaintenanceService(db, catalog).delete_recurring_task(task_id)
    raise_for_failure(result)
    return result.data
