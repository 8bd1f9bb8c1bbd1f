"""
维修 API 测试
"""


def test_issue_lifecycle(client):
    created = client.post("/maintenance/issues", json={"location_id": "N_Rooftop", "description": "Leak"},
                          headers={"X-Acting-User": "tuan"})
    assert created.status_code == 201
    issue = created.json()
    assert issue["location_name"] == "Rooftop"
    assert issue["property_name"] == "Neighbours"

    assert [i["id"] for i in client.get("/maintenance/issues", params={"status": "open"}).json()] == [issue["id"]]

    updated = client.put(f"/maintenance/issues/{issue['id']}",
                         json={"location_id": "N_Rooftop", "description": "Leak", "status": "completed"}).json()
    assert updated["status"] == "completed"
    assert client.get("/maintenance/issues", params={"status": "open"}).json() == []

    assert client.delete(f"/maintenance/issues/{issue['id']}").json() == {"id": issue["id"]}
    assert client.delete(f"/maintenance/issues/{issue['id']}").status_code == 404


def test_issue_validation(client):
    response = client.post("/maintenance/issues", json={"location_id": "X9", "description": "Leak"})
    assert response.status_code == 422
    assert response.json()["detail"] == {"code": "validation", "message": "Unknown location 'X9'."}
    assert client.post("/maintenance/issues", json={"location_id": "T1", "description": ""}).status_code == 422


def test_recurring_run(client):
    created = client.post("/maintenance/recurring", json={
        "description": "Replace filters", "location_id": "T_Common", "next_due": "2024-03-01",
    })
    assert created.status_code == 201
    task = created.json()
    assert task["frequency"] == "monthly"

    issues = client.post("/maintenance/recurring/run", params={"today": "2024-03-01"}).json()
    assert len(issues) == 1
    assert issues[0]["template_id"] == task["id"]
    assert issues[0]["is_recurring"] is True
    assert issues[0]["due_date"] == "2024-03-01"

    assert client.post("/maintenance/recurring/run", params={"today": "2024-03-01"}).json() == []
    assert client.get("/maintenance/recurring").json()[0]["next_due"] == "2024-04-01"


def test_recurring_update_and_delete(client):
    task = client.post("/maintenance/recurring", json={
        "description": "Check alarms", "location_id": "T1", "next_due": "2024-03-01",
    }).json()

    updated = client.put(f"/maintenance/recurring/{task['id']}", json={
        "description": "Check alarms", "location_id": "T2", "next_due": "2024-06-01",
    }).json()
    assert updated["location_id"] == "T2"

    assert client.post("/maintenance/recurring", json={
        "description": "x", "location_id": "T1", "next_due": "2024-03-01", "frequency": "weekly",
    }).status_code == 422
    assert client.delete(f"/maintenance/recurring/{task['id']}").status_code == 200
    assert client.delete(f"/maintenance/recurring/{task['id']}").status_code == 404
