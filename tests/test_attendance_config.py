import pytest

from attendance_tracker.schemas.attendance import AttendanceConfigIn
from attendance_tracker.services import attendance_config
from attendance_tracker.services.errors import ValidationError

GEOFENCED = {
    "workStartHour": 8,
    "workEndHour": 17,
    "officeLat": -6.2,
    "officeLng": 106.8166,
    "radiusMeters": 150,
    "useGeofence": True,
    "enforceGeofence": True,
    "requireProofOfWork": True,
    "allowWFH": False,
}


def _cfg(**overrides) -> AttendanceConfigIn:
    data = {"work_start_hour": 9, "work_end_hour": 17}
    data.update(overrides)
    return AttendanceConfigIn(**data)


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"work_start_hour": -1}, "Jam kerja harus antara 0-23"),
        ({"work_end_hour": 24}, "Jam kerja harus antara 0-23"),
        ({"work_start_hour": 17, "work_end_hour": 17}, "Jam mulai harus lebih awal dari jam selesai"),
        ({"use_geofence": True, "office_lat": -6.2}, "Koordinat kantor dan radius diperlukan jika geofencing diaktifkan"),
        (
            {"use_geofence": True, "office_lat": -6.2, "office_lng": 106.8, "radius_meters": 0},
            "Koordinat kantor dan radius diperlukan jika geofencing diaktifkan",
        ),
        ({"office_lat": 91.0}, "Latitude harus antara -90 dan 90"),
        ({"office_lng": -181.0}, "Longitude harus antara -180 dan 180"),
    ],
)
def test_validate_config_rejects(overrides, message):
    with pytest.raises(ValidationError) as exc:
        attendance_config.validate_config(_cfg(**overrides))
    assert exc.value.message == message
    assert exc.value.status_code == 400


def test_save_config_upserts_single_row(db):
    assert attendance_config.get_config(db) is None
    # defaults from settings until something is saved
    assert attendance_config.working_hours(None) == (9, 17)

    first = attendance_config.save_config(db, _cfg(work_start_hour=8))
    second = attendance_config.save_config(db, _cfg(work_start_hour=7, allow_wfh=False))

    assert first.id == second.id == "default"
    stored = attendance_config.get_config(db)
    assert stored.work_start_hour == 7
    assert stored.allow_wfh is False
    assert attendance_config.working_hours(stored) == (7, 17)


def test_geofence_enabled_requires_complete_office(db):
    assert not attendance_config.geofence_enabled(None)
    cfg = attendance_config.save_config(
        db, _cfg(use_geofence=True, office_lat=-6.2, office_lng=106.8, radius_meters=100)
    )
    assert attendance_config.geofence_enabled(cfg)


def test_get_config_empty_object_before_save(client, auth_headers):
    resp = client.get("/api/admin/attendance-config", headers=auth_headers("budi"))
    assert resp.status_code == 200
    assert resp.json() == {}


def test_admin_saves_and_employee_reads_config(client, auth_headers):
    resp = client.post("/api/admin/attendance-config", json=GEOFENCED, headers=auth_headers("admin"))
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["id"] == "default"
    assert body["allowWFH"] is False
    assert body["radiusMeters"] == 150

    resp = client.get("/api/admin/attendance-config", headers=auth_headers("budi"))
    assert resp.status_code == 200
    read = resp.json()
    for key, value in GEOFENCED.items():
        assert read[key] == value


def test_employee_cannot_save_config(client, auth_headers):
    resp = client.post("/api/admin/attendance-config", json=GEOFENCED, headers=auth_headers("budi"))
    assert resp.status_code == 403
    assert resp.json() == {"error": "Forbidden"}


def test_save_config_validation_errors(client, auth_headers):
    headers = auth_headers("admin")
    resp = client.post(
        "/api/admin/attendance-config",
        json={"workStartHour": 18, "workEndHour": 9},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Jam mulai harus lebih awal dari jam selesai"}

    resp = client.post("/api/admin/attendance-config", json={"workEndHour": 9}, headers=headers)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_config_requires_auth(client):
    resp = client.get("/api/admin/attendance-config")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Not authenticated"}
