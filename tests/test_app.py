"""
Tests for the room status JSON endpoints using the Flask test client.
"""
from datetime import date, timedelta

from reconciliation import Reconciler
from repositories import RepositoryError


class TestSyncEndpoints:

    def test_sync_all_rooms(self, client, add_room, add_booking, room_status_of):
        add_room("101", status="available")
        add_room("102", status="occupied")
        add_booking("102", "2025-08-28", "2025-08-29", status="confirmed")

        response = client.post("/api/rooms/sync", json={"as_of": "2025-08-24"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["success"] is True
        assert data["data"]["summary"]["updated"] == 1
        assert data["data"]["summary"]["unchanged"] == 1
        assert [r["room_number"] for r in data["data"]["results"]] == ["101", "102"]
        assert room_status_of("102") == "prebooked"

    def test_sync_single_room_from_body(self, client, add_room, add_booking):
        add_room("105", status="cleaning")
        add_booking("105", "2025-08-22", "2025-08-23", status="checked_out", checked_out_by="system")

        response = client.post("/api/rooms/sync", json={"room_number": "105", "as_of": "2025-08-24"})

        assert response.status_code == 200
        result = response.get_json()["data"]
        assert result == {
            "room_number": "105",
            "old_status": "cleaning",
            "new_status": "occupied",
            "reason": "occupied_overstay",
            "action": "overstay_corrected",
            "message": None,
        }

    def test_sync_single_room_path(self, client, add_room):
        add_room("104", status="maintenance")

        response = client.post("/api/rooms/104/sync", json={"as_of": "2025-08-24"})

        assert response.status_code == 200
        assert response.get_json()["data"]["action"] == "skipped_manual_override"

    def test_sync_unknown_room_is_404(self, client):
        response = client.post("/api/rooms/999/sync")

        assert response.status_code == 404
        assert response.get_json()["success"] is False

    def test_integrity_error_is_409(self, client, add_room, add_booking, room_status_of):
        add_room("103", status="occupied")
        add_booking("103", "2025-08-23", "2025-08-26", status="checked_in")
        add_booking("103", "2025-08-24", "2025-08-25", status="checked_in")

        response = client.post("/api/rooms/103/sync", json={"as_of": "2025-08-24"})

        assert response.status_code == 409
        data = response.get_json()
        assert data["data"]["action"] == "critical"
        assert "checked-in bookings" in data["error"]
        assert room_status_of("103") == "occupied"

    def test_invalid_as_of_is_400(self, client):
        response = client.post("/api/rooms/sync", json={"as_of": "24/08/2025"})

        assert response.status_code == 400
        assert "YYYY-MM-DD" in response.get_json()["error"]

    def test_repository_failure_is_503(self, client, add_room, monkeypatch):
        add_room("101")

        def failing_reconcile(self, room_number, as_of=None):
            raise RepositoryError("database is locked")

        monkeypatch.setattr(Reconciler, "reconcile_room", failing_reconcile)

        response = client.post("/api/rooms/101/sync")

        assert response.status_code == 503

    def test_oversized_room_number_is_rejected_not_truncated(self, client, add_room, room_status_of):
        add_room("10" * 10, status="booked")
        oversized = "10" * 10 + "5"

        response = client.post("/api/rooms/sync", json={"room_number": oversized, "as_of": "2025-08-24"})
        assert response.status_code == 400
        assert "at most 20 characters" in response.get_json()["error"]

        response = client.post(f"/api/rooms/{oversized}/sync", json={"as_of": "2025-08-24"})
        assert response.status_code == 400

        assert room_status_of("10" * 10) == "booked"

    def test_room_number_at_length_limit_is_accepted(self, client, add_room):
        add_room("10" * 10, status="available")

        response = client.post(f"/api/rooms/{'10' * 10}/sync", json={"as_of": "2025-08-24"})

        assert response.status_code == 200
        assert response.get_json()["data"]["room_number"] == "10" * 10

    def test_sync_requires_post(self, client):
        response = client.get("/api/rooms/sync")
        assert response.status_code == 405


class TestReadEndpoints:

    def test_status_board_does_not_write(self, client, add_room, add_booking, room_status_of):
        add_room("101", status="available")
        add_room("102", status="occupied")
        add_booking("102", "2025-08-28", "2025-08-29", status="confirmed")
        add_room("104", status="maintenance")

        response = client.get("/api/rooms/status?as_of=2025-08-24")

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["as_of"] == "2025-08-24"
        rooms = {room["room_number"]: room for room in data["rooms"]}
        assert rooms["102"]["derived_status"] == "prebooked"
        assert rooms["102"]["in_sync"] is False
        assert rooms["104"]["manual_override"] is True
        assert rooms["104"]["in_sync"] is True
        assert data["out_of_sync"] == ["102"]
        assert room_status_of("102") == "occupied"

    def test_availability(self, client, add_room, add_booking):
        add_room("101", status="available")
        add_room("102", status="prebooked")
        add_booking("102", "2025-08-28", "2025-08-29", status="confirmed")
        add_room("104", status="maintenance")

        response = client.get("/api/rooms/availability?check_in=2025-08-26&check_out=2025-08-28&as_of=2025-08-24")

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["available_count"] == 2
        assert [room["room_number"] for room in data["rooms"]] == ["101", "102"]

        response = client.get("/api/rooms/availability?check_in=2025-08-27&check_out=2025-08-29&as_of=2025-08-24")
        assert [room["room_number"] for room in response.get_json()["data"]["rooms"]] == ["101"]

    def test_availability_validates_dates(self, client):
        today = date.today()
        response = client.get("/api/rooms/availability?check_in=2025-08-26")
        assert response.status_code == 400

        response = client.get("/api/rooms/availability?check_in=2025-08-28&check_out=2025-08-26&as_of=2025-08-24")
        assert response.status_code == 400

        past = (today - timedelta(days=30)).isoformat()
        later = (today - timedelta(days=28)).isoformat()
        response = client.get(f"/api/rooms/availability?check_in={past}&check_out={later}&as_of={today.isoformat()}")
        assert response.status_code == 400


class TestSecurity:

    def test_security_headers(self, client):
        response = client.get("/api/csrf-token")
        assert response.status_code == 200
        assert response.get_json()["csrf_token"]
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_sync_requires_csrf_token_when_enabled(self, client, add_room):
        from app import app

        add_room("101")
        app.config['WTF_CSRF_ENABLED'] = True

        response = client.post("/api/rooms/sync", json={})

        assert response.status_code == 400
