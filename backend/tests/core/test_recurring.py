"""
周期维修规则测试
"""
from datetime import date

from kolab_core.domain.records import MaintenanceIssue, RecurringTask
from kolab_core.domain.recurring import advance_next_due, has_open_issue, plan_firing


def _task(next_due="2024-03-01", frequency="monthly"):
    return RecurringTask.from_mapping({
        "id": "tpl1",
        "description": "Check smoke alarms",
        "locationId": "N_Rooftop",
        "frequency": frequency,
        "nextDue": next_due,
    })


def _issue(status, template_id="tpl1"):
    return MaintenanceIssue(id="i1", location_id="N_Rooftop", description="x",
                            status=status, template_id=template_id)


class TestPlanFiring:
    """模板触发"""

    def test_due_task_fires(self, catalog):
        firing = plan_firing(_task(), "2024-03-01", [], catalog)
        assert firing is not None
        assert firing.next_due == date(2024, 4, 1)
        assert firing.issue_fields == {
            "location_id": "N_Rooftop",
            "location_name": "Rooftop",
            "property_name": "Neighbours",
            "description": "Check smoke alarms",
            "status": "open",
            "assigned_staff": "Unassigned",
            "template_id": "tpl1",
            "is_recurring": True,
            "due_date": date(2024, 3, 1),
        }

    def test_not_yet_due(self):
        assert plan_firing(_task("2024-03-02"), "2024-03-01", []) is None

    def test_open_issue_blocks_firing(self):
        assert plan_firing(_task(), "2024-03-05", [_issue("in-progress")]) is None

    def test_completed_issue_does_not_block(self):
        assert plan_firing(_task(), "2024-03-05", [_issue("completed")]) is not None

    def test_other_template_does_not_block(self):
        assert plan_firing(_task(), "2024-03-05", [_issue("open", template_id="tpl2")]) is not None

    def test_without_catalog_names_are_empty(self):
        firing = plan_firing(_task(), "2024-03-05", [])
        assert firing.issue_fields["location_name"] is None


class TestAdvanceNextDue:
    """下次到期日"""

    def test_month_end_rollover(self):
        assert advance_next_due(_task("2024-01-31")) == date(2024, 3, 2)

    def test_unsupported_frequency_unchanged(self):
        assert advance_next_due(_task("2024-01-31", frequency="weekly")) == date(2024, 1, 31)

    def test_has_open_issue(self):
        assert has_open_issue("tpl1", [_issue("open")]) is True
        assert has_open_issue("tpl1", [_issue("completed")]) is False
