"""
维修服务 - 维修问题与周期模板
支持事件发布：问题创建、周期检查完成
"""
from datetime import date, datetime
from typing import Any, Callable, List, Mapping, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kolab.models.events import EventType, MaintenanceEventData, RecurringRunData
from kolab.models.ontology import MaintenanceIssue, RecurringTask
from kolab.services.results import CODE_NOT_FOUND, CODE_VALIDATION, OperationResult, normalize_error
from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import parse_date
from kolab_core.domain.records import IssueStatus, UNASSIGNED
from kolab_core.domain.recurring import SUPPORTED_FREQUENCIES, plan_firing
from kolab_core.engine.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


class MaintenanceService:
    """维修服务"""

    def __init__(self, db: Session, catalog: PropertyCatalog, event_publisher: Callable[[Event], Any] = None):
        self.db = db
        self.catalog = catalog
        self._publish_event = event_publisher or event_bus.publish

    # ============== 维修问题 ==============

    def list_issues(self, status: Optional[str] = None) -> List[MaintenanceIssue]:
        query = self.db.query(MaintenanceIssue)
        if status:
            query = query.filter(MaintenanceIssue.status == status)
        return query.order_by(MaintenanceIssue.reported_at.desc()).all()

    def get_issue(self, issue_id: str) -> Optional[MaintenanceIssue]:
        return self.db.query(MaintenanceIssue).filter(MaintenanceIssue.id == issue_id).first()

    def save_issue(
        self,
        data: Mapping[str, Any],
        issue_id: Optional[str] = None,
        acting_user: Optional[str] = None,
    ) -> OperationResult:
        """
        创建或更新维修问题，位置名称与房源名称从目录填充

        Returns:
            OperationResult，data 为 MaintenanceIssue 行
        """
        location = self.catalog.get_location(data.get("location_id"))
        if location is None:
            return OperationResult.failure(CODE_VALIDATION, f"Unknown location '{data.get('location_id')}'.")
        if not (data.get("description") or "").strip():
            return OperationResult.failure(CODE_VALIDATION, "Description is required.")
        status = data.get("status") or IssueStatus.OPEN.value
        if status not in {s.value for s in IssueStatus}:
            return OperationResult.failure(CODE_VALIDATION, f"Unknown issue status '{status}'.")

        try:
            if issue_id:
                issue = self.get_issue(issue_id)
                if issue is None:
                    self.db.rollback()
                    return OperationResult.failure(CODE_NOT_FOUND, "Issue not found")
            else:
                issue = MaintenanceIssue(reported_by=acting_user, reported_at=datetime.now())
                self.db.add(issue)
            issue.location_id = location.id
            issue.location_name = location.name
            issue.property_name = location.property_name
            issue.description = data["description"].strip()
            issue.status = status
            issue.assigned_staff = data.get("assigned_staff") or UNASSIGNED
            issue.updated_at = datetime.now()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "save_issue")

        if not issue_id:
            logger.info(f"Maintenance issue {issue.id} reported for {issue.location_name}")
            self._publish_issue_created(issue, acting_user)
        return OperationResult.success(issue)

    def delete_issue(self, issue_id: str) -> OperationResult:
        try:
            issue = self.get_issue(issue_id)
            if issue is None:
                self.db.rollback()
                return OperationResult.failure(CODE_NOT_FOUND, "Issue not found")
            self.db.delete(issue)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "delete_issue")
        return OperationResult.success({"id": issue_id})

    def _publish_issue_created(self, issue: MaintenanceIssue, actor: Optional[str] = None) -> None:
        self._publish_event(Event(
            event_type=EventType.MAINTENANCE_ISSUE_CREATED.value,
            timestamp=datetime.now(),
            data=MaintenanceEventData(
                issue_id=issue.id,
                location_id=issue.location_id,
                description=issue.description,
                template_id=issue.template_id,
                due_date=issue.due_date,
                reported_by=actor,
            ).to_dict(),
            source="maintenance_service",
            actor=actor,
        ))

    # ============== 周期模板 ==============

    def list_recurring_tasks(self) -> List[RecurringTask]:
        return self.db.query(RecurringTask).order_by(RecurringTask.next_due).all()

    def get_recurring_task(self, task_id: str) -> Optional[RecurringTask]:
        return self.db.query(RecurringTask).filter(RecurringTask.id == task_id).first()

    def save_recurring_task(self, data: Mapping[str, Any], task_id: Optional[str] = None) -> OperationResult:
        """创建或更新周期模板"""
        if self.catalog.get_location(data.get("location_id")) is None:
            return OperationResult.failure(CODE_VALIDATION, f"Unknown location '{data.get('location_id')}'.")
        if not (data.get("description") or "").strip():
            return OperationResult.failure(CODE_VALIDATION, "Description is required.")
        frequency = data.get("frequency") or SUPPORTED_FREQUENCIES[0]
        if frequency not in SUPPORTED_FREQUENCIES:
            return OperationResult.failure(CODE_VALIDATION, f"Unsupported frequency '{frequency}'.")
        next_due = parse_date(data.get("next_due"))
        if next_due is None:
            return OperationResult.failure(CODE_VALIDATION, "Next due date is required.")

        try:
            if task_id:
                task = self.get_recurring_task(task_id)
                if task is None:
                    self.db.rollback()
                    return OperationResult.failure(CODE_NOT_FOUND, "Recurring task not found")
            else:
                task = RecurringTask()
                self.db.add(task)
            task.description = data["description"].strip()
            task.location_id = data["location_id"]
            task.frequency = frequency
            task.next_due = next_due
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "save_recurring_task")
        return OperationResult.success(task)

    def delete_recurring_task(self, task_id: str) -> OperationResult:
        try:
            task = self.get_recurring_task(task_id)
            if task is None:
                self.db.rollback()
                return OperationResult.failure(CODE_NOT_FOUND, "Recurring task not found")
            self.db.delete(task)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            return normalize_error(e, "delete_recurring_task")
        return OperationResult.success({"id": task_id})

    # ============== 周期检查 ==============

    def ensure_recurring_issues(self, today: Any = None) -> List[MaintenanceIssue]:
        """
        为到期的周期模板生成维修问题

        逐个模板顺序处理：未到期或已有未完成问题的跳过；
        生成问题并把 next_due 推进一个月。单个模板失败只记录日志，不影响其余模板。

        Returns:
            本次新建的问题列表
        """
        run_date = parse_date(today) or date.today()
        created: List[MaintenanceIssue] = []
        failed: List[str] = []

        try:
            task_ids = [t.id for t in self.list_recurring_tasks()]
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Recurring maintenance check could not load templates: {e}", exc_info=True)
            return created

        for task_id in task_ids:
            try:
                issue = self._fire_recurring_task(task_id, run_date)
            except SQLAlchemyError as e:
                self.db.rollback()
                failed.append(task_id)
                logger.error(f"Recurring task {task_id} failed: {e}", exc_info=True)
                continue
            if issue is not None:
                created.append(issue)

        for issue in created:
            self._publish_issue_created(issue)
        self._publish_event(Event(
            event_type=EventType.MAINTENANCE_RECURRING_GENERATED.value,
            timestamp=datetime.now(),
            data=RecurringRunData(
                run_date=run_date,
                created_issue_ids=[i.id for i in created],
                failed_task_ids=failed,
            ).to_dict(),
            source="maintenance_service",
        ))
        logger.info(f"Recurring maintenance check {run_date}: {len(created)} created, {len(failed)} failed")
        return created

    def _fire_recurring_task(self, task_id: str, run_date: date) -> Optional[MaintenanceIssue]:
        """单个模板：检查并生成问题，同一事务内推进 next_due"""
        task = self.db.query(RecurringTask).filter(RecurringTask.id == task_id).with_for_update().first()
        if task is None:
            self.db.rollback()
            return None
        open_issues = [
            i.to_record() for i in
            self.db.query(MaintenanceIssue)
            .filter(MaintenanceIssue.template_id == task_id,
                    MaintenanceIssue.status != IssueStatus.COMPLETED.value)
            .all()
        ]
        firing = plan_firing(task.to_record(), run_date, open_issues, self.catalog)
        if firing is None:
            self.db.rollback()
            return None

        issue = MaintenanceIssue(reported_at=datetime.now(), **firing.issue_fields)
        self.db.add(issue)
        task.next_due = firing.next_due
        self.db.commit()
        logger.info(f"Recurring issue {issue.id} created from template {task_id}, next due {task.next_due}")
        return issue
