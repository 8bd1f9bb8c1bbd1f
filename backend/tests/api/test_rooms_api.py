"""
房间 API 测试
"""


def test_list_rooms(client):
    rooms = client.get("/rooms").json()
    assert [r["id"] for r in rooms] == ["T1", "T2", "T3", "N1", "N2"]
    assert rooms[3]["property_name"] == "Neighbours"


def test_list_locations(client):
    locations = {loc["id"]: loc for loc in client.get("/rooms/locations").json()}
    assert len(locations) == 7
    assert locations["N_Rooftop"]["location_type"] == "common"
    assert locations["T1"]["location_type"] == "room"


def test_room_options_and_occupied_dates(client):
    created = client.post("/bookings", json={
        "room_id": "T2", "guest_name": "Dan", "check_in": "2024-03-01", "check_out": "2024-03-03",
    }).json()

    options = {o["room_id"]: o for o in client.get("/rooms/options", params={"today": "2024-03-02"}).json()}
    assert options["T2"]["label"] == "T2 (Occupied)"
    assert options["T1"]["display_status"] == "Open"

    editing = client.get("/rooms/options", params={"today": "2024-03-02", "editing_id": created["id"]}).json()
    assert {o["room_id"]: o["display_status"] for o in editing}["T2"] == "Future Bookings"

    assert client.get("/rooms/T2/occupied-dates").json() == ["2024-03-01", "2024-03-02"]
    assert client.get("/rooms/T2/occupied-dates", params={"exclude_id": created["id"]}).json() == []


def test_occupied_dates_unknown_room(client):
    assert client.get("/rooms/Z9/occupied-dates").status_code == 404
