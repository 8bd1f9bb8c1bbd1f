"""
保洁 API 测试
"""


def test_update_field_and_statuses(client):
    response = client.patch("/housekeeping/rooms/T1", json={"field": "status", "value": "dirty"},
                            headers={"X-Acting-User": "linh"})
    assert response.status_code == 200
    assert response.json()["status"] == "dirty"

    client.patch("/housekeeping/rooms/T1", json={"field": "assigned_staff", "value": "Mai"})
    statuses = client.get("/housekeeping/statuses").json()
    assert statuses["T1"]["status"] == "dirty"
    assert statuses["T1"]["assigned_staff"] == "Mai"
    assert "T2" not in statuses


def test_update_field_errors(client):
    unknown = client.patch("/housekeeping/rooms/Z9", json={"field": "status", "value": "dirty"})
    assert unknown.status_code == 404
    assert unknown.json()["detail"]["code"] == "not-found"

    bad_value = client.patch("/housekeeping/rooms/T1", json={"field": "priority", "value": 7})
    assert bad_value.status_code == 422
    assert bad_value.json()["detail"]["code"] == "validation"

    bad_field = client.patch("/housekeeping/rooms/T1", json={"field": "room_type", "value": "x"})
    assert bad_field.status_code == 422


def test_mark_clean(client):
    client.patch("/housekeeping/rooms/N2", json={"field": "priority", "value": 1})
    body = client.post("/housekeeping/rooms/N2/clean").json()
    assert (body["status"], body["assigned_staff"], body["priority"]) == ("clean", "Unassigned", 3)


def test_tasks_plan_message_summary(client):
    client.post("/bookings", json={"room_id": "N1", "guest_name": "Eve", "check_in": "2024-03-01",
                                   "check_out": "2024-03-05"})
    client.patch("/housekeeping/rooms/T3", json={"field": "status", "value": "dirty"})
    params = {"date": "2024-03-05"}

    tasks = client.get("/housekeeping/tasks", params=params).json()
    assert [(t["room_id"], t["label"]) for t in tasks] == [("N1", "Checkout"), ("T3", "Dirty")]

    plan = client.get("/housekeeping/plan", params=params).json()
    assert [t["room_id"] for t in plan["normal"]] == ["N1", "T3"]
    assert plan["high"] == [] and plan["low"] == []

    message = client.get("/housekeeping/message", params=params)
    assert message.headers["content-type"].startswith("text/plain")
    assert message.text == (
        "Cleaning plan 2024-03-05\n"
        "\n"
        "Townhouse\n"
        "- T3 | Dirty | P3 | Unassigned\n"
        "\n"
        "Neighbours\n"
        "- N1 | Checkout | P3 | Unassigned"
    )

    summary = client.get("/housekeeping/summary", params=params).json()
    assert summary["check_outs"] == 1
    assert summary["rooms_to_clean"] == 1


def test_invalid_date(client):
    response = client.get("/housekeeping/tasks", params={"date": "2024-13-40"})
    assert response.status_code == 422
    assert response.json()["detail"] == {"code": "validation", "message": "Invalid date '2024-13-40'."}
