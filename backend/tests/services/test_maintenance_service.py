"""
维修服务测试
"""
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from kolab.services.maintenance_service import MaintenanceService


@pytest.fixture
def service(db_session, catalog, recorder):
    return MaintenanceService(db_session, catalog, event_publisher=recorder)


def _recurring_task(service, next_due="2024-03-01"):
    return service.save_recurring_task({
        "location_id": "T_Common",
        "description": "Deep clean kitchen",
        "next_due": next_due,
    }).data


class TestIssues:
    """维修问题"""

    def test_create_fills_names_from_catalog(self, service, recorder):
        result = service.save_issue({"location_id": "N_Rooftop", "description": " Leaking pipe "},
                                    acting_user="tuan")

        issue = result.data
        assert result.ok
        assert issue.id
        assert (issue.location_name, issue.property_name) == ("Rooftop", "Neighbours")
        assert issue.description == "Leaking pipe"
        assert issue.status == "open"
        assert issue.assigned_staff == "Unassigned"
        event = recorder.of_type("maintenance.issue_created")[0]
        assert event.data["issue_id"] == issue.id
        assert event.data["reported_by"] == "tuan"

    @pytest.mark.parametrize("data,message", [
        ({"location_id": "X9", "description": "x"}, "Unknown location 'X9'."),
        ({"location_id": "T1", "description": "  "}, "Description is required."),
        ({"location_id": "T1", "description": "x", "status": "done"}, "Unknown issue status 'done'."),
    ])
    def test_validation(self, service, data, message):
        result = service.save_issue(data)
        assert result.code == "validation"
        assert result.message == message

    def test_update_does_not_publish_created(self, service, recorder):
        issue = service.save_issue({"location_id": "T1", "description": "Broken lamp"}).data

        result = service.save_issue({"location_id": "T1", "description": "Broken lamp",
                                     "status": "completed", "assigned_staff": "Dat"}, issue_id=issue.id)

        assert result.data.status == "completed"
        assert result.data.assigned_staff == "Dat"
        assert len(recorder.of_type("maintenance.issue_created")) == 1

    def test_update_missing_issue(self, service):
        result = service.save_issue({"location_id": "T1", "description": "x"}, issue_id="nope")
        assert result.code == "not-found"

    def test_list_filter_and_delete(self, service):
        first = service.save_issue({"location_id": "T1", "description": "a"}).data
        service.save_issue({"location_id": "T2", "description": "b", "status": "in-progress"})

        assert [i.id for i in service.list_issues(status="open")] == [first.id]
        assert len(service.list_issues()) == 2

        assert service.delete_issue(first.id).data == {"id": first.id}
        assert service.get_issue(first.id) is None
        assert service.delete_issue(first.id).code == "not-found"


class TestRecurringTasks:
    """周期模板"""

    def test_save_defaults_to_monthly(self, service):
        task = _recurring_task(service)
        assert task.frequency == "monthly"
        assert task.next_due == date(2024, 3, 1)

    @pytest.mark.parametrize("data,message", [
        ({"location_id": "X9", "description": "x", "next_due": "2024-03-01"}, "Unknown location 'X9'."),
        ({"location_id": "T1", "description": "x", "next_due": "2024-03-01", "frequency": "weekly"},
         "Unsupported frequency 'weekly'."),
        ({"location_id": "T1", "description": "x"}, "Next due date is required."),
    ])
    def test_validation(self, service, data, message):
        assert service.save_recurring_task(data).message == message

    def test_update_and_delete(self, service):
        task = _recurring_task(service)
        updated = service.save_recurring_task({"location_id": "T1", "description": "Filters",
                                               "next_due": "2024-05-01"}, task_id=task.id).data
        assert updated.location_id == "T1"
        assert service.save_recurring_task({"location_id": "T1", "description": "x", "next_due": "2024-05-01"},
                                           task_id="nope").code == "not-found"
        assert service.delete_recurring_task(task.id).ok
        assert service.list_recurring_tasks() == []


class TestEnsureRecurringIssues:
    """周期检查"""

    def test_due_task_creates_issue_and_advances(self, service, recorder):
        task = _recurring_task(service)

        created = service.ensure_recurring_issues(today="2024-03-01")

        assert len(created) == 1
        issue = created[0]
        assert issue.template_id == task.id
        assert issue.is_recurring is True
        assert issue.due_date == date(2024, 3, 1)
        assert issue.location_name == "Common Space"
        assert service.get_recurring_task(task.id).next_due == date(2024, 4, 1)
        run = recorder.of_type("maintenance.recurring_generated")[0]
        assert run.data["created_issue_ids"] == [issue.id]
        assert run.data["run_date"] == "2024-03-01"

    def test_rerun_is_idempotent(self, service):
        _recurring_task(service)
        service.ensure_recurring_issues(today="2024-03-01")
        assert service.ensure_recurring_issues(today="2024-03-01") == []

    def test_open_issue_blocks_next_firing(self, service):
        task = _recurring_task(service)
        issue = service.ensure_recurring_issues(today="2024-03-01")[0]

        assert service.ensure_recurring_issues(today="2024-04-02") == []
        assert service.get_recurring_task(task.id).next_due == date(2024, 4, 1)

        service.save_issue({"location_id": "T_Common", "description": issue.description,
                            "status": "completed"}, issue_id=issue.id)
        assert len(service.ensure_recurring_issues(today="2024-04-02")) == 1
        assert service.get_recurring_task(task.id).next_due == date(2024, 5, 1)

    def test_not_due(self, service):
        _recurring_task(service, next_due="2024-03-10")
        assert service.ensure_recurring_issues(today="2024-03-01") == []

    def test_one_failing_template_does_not_stop_the_rest(self, service, recorder):
        broken = _recurring_task(service)
        healthy = service.save_recurring_task({"location_id": "N_Rooftop", "description": "Sweep rooftop",
                                               "next_due": "2024-03-01"}).data
        original = service._fire_recurring_task

        def flaky(task_id, run_date):
            if task_id == broken.id:
                raise OperationalError("UPDATE recurring_tasks", {}, Exception("disk I/O error"))
            return original(task_id, run_date)

        with patch.object(service, "_fire_recurring_task", side_effect=flaky):
            created = service.ensure_recurring_issues(today="2024-03-01")

        assert [i.template_id for i in created] == [healthy.id]
        run = recorder.of_type("maintenance.recurring_generated")[0]
        assert run.data["failed_task_ids"] == [broken.id]
