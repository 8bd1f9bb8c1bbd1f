"""
kolab_core/domain/recurring.py

周期维修规则 - 判断模板是否到期、生成维修问题字段、推进下次到期日
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional

from kolab_core.domain.catalog import PropertyCatalog
from kolab_core.domain.dates import add_months, format_date, parse_date
from kolab_core.domain.records import IssueStatus, MaintenanceIssue, RecurringTask, UNASSIGNED

FREQUENCY_MONTHLY = "monthly"
SUPPORTED_FREQUENCIES = (FREQUENCY_MONTHLY,)


@dataclass
class RecurringFiring:
    """一次模板触发：待创建的问题与模板的新到期日"""

    task: RecurringTask
    issue_fields: Dict[str, Any]
    next_due: Optional[date]


def has_open_issue(task_id: str, issues: Iterable[MaintenanceIssue]) -> bool:
    """该模板是否已有未完成的问题"""
    return any(issue.template_id == task_id and issue.is_open for issue in issues)


def is_due(task: RecurringTask, today: date) -> bool:
    return task.next_due is not None and task.next_due <= today


def advance_next_due(task: RecurringTask) -> Optional[date]:
    """monthly 推进一个月；其他频率保持不变"""
    if task.frequency != FREQUENCY_MONTHLY or task.next_due is None:
        return task.next_due
    return parse_date(add_months(format_date(task.next_due), 1))


def plan_firing(
    task: RecurringTask,
    today: Any,
    open_issues: Iterable[MaintenanceIssue],
    catalog: Optional[PropertyCatalog] = None,
) -> Optional[RecurringFiring]:
    """
    判断单个模板是否需要生成问题

    Returns:
        RecurringFiring；未到期或已有未完成问题时返回 None
    """
    day = parse_date(today)
    if day is None or not is_due(task, day):
        return None
    if has_open_issue(task.id, open_issues):
        return None

    location = catalog.get_location(task.location_id) if catalog else None
    issue_fields = {
        "location_id": task.location_id,
        "location_name": location.name if location else None,
        "property_name": location.property_name if location else None,
        "description": task.description,
        "status": IssueStatus.OPEN.value,
        "assigned_staff": UNASSIGNED,
        "template_id": task.id,
        "is_recurring": True,
        "due_date": task.next_due,
    }
    return RecurringFiring(task=task, issue_fields=issue_fields, next_due=advance_next_due(task))


__all__ = [
    "FREQUENCY_MONTHLY",
    "SUPPORTED_FREQUENCIES",
    "RecurringFiring",
    "has_open_issue",
    "is_due",
    "advance_next_due",
    "plan_firing",
]
