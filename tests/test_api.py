import datetime as dt

from coachcal.core.config import settings
from tests.conftest import MONDAY

P = settings.API_PREFIX


async def test_health(api):
    res = await api.get(f"{P}/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}

    res = await api.get(f"{P}/health/db")
    assert res.status_code == 200
    assert res.json()["database"] == "sqlite"


async def test_register_login_me(api):
    from coachcal.dependencies import get_current_user
    from coachcal.main import app

    # exercise the real bearer-token path
    app.dependency_overrides.pop(get_current_user, None)

    res = await api.post(
        f"{P}/auth/register",
        json={"email": "Coach@Example.com", "password": "secret123", "display_name": "Coach", "role": "coach"},
    )
    assert res.status_code == 201, res.text
    coach = res.json()
    assert coach["email"] == "coach@example.com"
    assert coach["role"] == "coach"

    res = await api.post(
        f"{P}/auth/register",
        json={
            "email": "client@example.com",
            "password": "secret123",
            "display_name": "Client",
            "coach_id": coach["id"],
        },
    )
    assert res.status_code == 201, res.text
    assert res.json()["coach_id"] == coach["id"]

    dup = await api.post(
        f"{P}/auth/register",
        json={"email": "client@example.com", "password": "secret123", "display_name": "Again"},
    )
    assert dup.status_code == 409
    assert dup.json()["detail"] == "email_already_exists"

    bad = await api.post(f"{P}/auth/login", json={"email": "client@example.com", "password": "wrong1234"})
    assert bad.status_code == 401

    res = await api.post(f"{P}/auth/login", json={"email": "client@example.com", "password": "secret123"})
    assert res.status_code == 200
    token = res.json()["access_token"]

    me = await api.get(f"{P}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "client@example.com"

    res = await api.get(f"{P}/auth/me", headers={"Authorization": "Bearer nonsense"})
    assert res.status_code == 401


async def test_full_booking_flow(api, current, coach, client_user):
    current.user = coach
    res = await api.post(
        f"{P}/calendars",
        json={"name": "Erstgespräch", "slot_duration_minutes": 30, "min_notice_hours": 0},
    )
    assert res.status_code == 201, res.text
    cal_id = res.json()["id"]

    res = await api.put(
        f"{P}/calendars/{cal_id}/rules",
        json={"rules": [{"day_of_week": 0, "start_time": "09:00", "end_time": "12:00"}]},
    )
    assert res.status_code == 200, res.text
    assert len(res.json()) == 1

    current.user = client_user
    res = await api.get(f"{P}/slots", params={"calendar_id": cal_id, "date": MONDAY.isoformat()})
    assert res.status_code == 200
    assert res.json() == {
        "calendar_id": cal_id,
        "date": MONDAY.isoformat(),
        "slots": ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"],
    }

    booking = {"calendar_id": cal_id, "date": MONDAY.isoformat(), "time": "10:00", "note": "first session"}
    res = await api.post(f"{P}/bookings", json=booking)
    assert res.status_code == 201, res.text
    appt = res.json()
    assert appt["status"] == "PENDING"
    assert appt["note"] == "first session"

    again = await api.post(f"{P}/bookings", json=booking)
    assert again.status_code == 409
    assert again.json()["detail"] == "slot_taken"

    res = await api.get(f"{P}/slots", params={"calendar_id": cal_id, "date": MONDAY.isoformat()})
    assert "10:00" not in res.json()["slots"]

    res = await api.get(f"{P}/bookings/my")
    assert res.json()["total"] == 1

    res = await api.post(f"{P}/bookings/{appt['id']}/confirm")
    assert res.status_code == 409
    assert res.json()["detail"] == "invalid_transition"

    current.user = coach
    res = await api.post(f"{P}/bookings/{appt['id']}/confirm")
    assert res.status_code == 200
    assert res.json()["status"] == "CONFIRMED"

    res = await api.get(f"{P}/coach/appointments", params={"from": MONDAY.isoformat(), "to": MONDAY.isoformat()})
    assert [a["id"] for a in res.json()] == [appt["id"]]

    current.user = client_user
    res = await api.post(f"{P}/bookings/{appt['id']}/cancel", json={"reason": "sick"})
    assert res.status_code == 409

    current.user = coach
    res = await api.post(f"{P}/bookings/{appt['id']}/cancel", json={"reason": "sick"})
    assert res.status_code == 200
    assert res.json()["status"] == "CANCELLED"
    assert res.json()["cancellation_reason"] == "sick"

    res = await api.get(f"{P}/slots", params={"calendar_id": cal_id, "date": MONDAY.isoformat()})
    assert "10:00" in res.json()["slots"]


async def test_booking_outside_window_is_400(api, current, calendar, client_user):
    current.user = client_user
    far = MONDAY + dt.timedelta(days=70)
    res = await api.post(f"{P}/bookings", json={"calendar_id": str(calendar.id), "date": far.isoformat(), "time": "09:00"})
    assert res.status_code == 400
    assert res.json()["detail"] == "outside_booking_window"


async def test_unknown_or_hidden_calendar_is_404(api, current, calendar, stranger):
    current.user = stranger
    res = await api.get(f"{P}/slots", params={"calendar_id": str(calendar.id), "date": MONDAY.isoformat()})
    assert res.status_code == 404
    assert res.json()["detail"] == "calendar_not_found"


async def test_availability_month_view(api, current, calendar, client_user):
    current.user = client_user
    res = await api.get(
        f"{P}/availability",
        params={"calendar_id": str(calendar.id), "from": "2025-01-01", "to": "2025-01-31"},
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["from"] == "2025-01-01"
    assert body["to"] == "2025-01-31"
    assert body["dates"] == ["2025-01-06", "2025-01-13", "2025-01-20", "2025-01-27"]


async def test_availability_range_is_bounded(api, current, calendar, client_user):
    current.user = client_user
    params = {"calendar_id": str(calendar.id), "from": "2025-01-01", "to": "2025-04-01"}
    res = await api.get(f"{P}/availability", params=params)
    assert res.status_code == 400
    assert res.json()["detail"] == "range_too_large"

    params.update({"from": "2025-02-01", "to": "2025-01-01"})
    res = await api.get(f"{P}/availability", params=params)
    assert res.status_code == 400
    assert res.json()["detail"] == "invalid_range"


async def test_blocked_times_endpoints(api, current, calendar, coach):
    current.user = coach
    res = await api.post(
        f"{P}/blocked-times",
        json={"blocked_date": MONDAY.isoformat(), "all_day": True, "start_time": "09:00"},
    )
    assert res.status_code == 422

    res = await api.post(f"{P}/blocked-times", json={"blocked_date": MONDAY.isoformat()})
    assert res.status_code == 201
    block_id = res.json()["id"]

    res = await api.get(f"{P}/slots", params={"calendar_id": str(calendar.id), "date": MONDAY.isoformat()})
    assert res.json()["slots"] == []

    res = await api.get(f"{P}/blocked-times")
    assert [b["id"] for b in res.json()] == [block_id]

    res = await api.delete(f"{P}/blocked-times/{block_id}")
    assert res.status_code == 204
    res = await api.get(f"{P}/slots", params={"calendar_id": str(calendar.id), "date": MONDAY.isoformat()})
    assert len(res.json()["slots"]) == 6


async def test_clients_cannot_manage_calendars(api, current, calendar, client_user):
    current.user = client_user
    res = await api.post(f"{P}/calendars", json={"name": "Nope"})
    assert res.status_code == 403
    res = await api.delete(f"{P}/calendars/{calendar.id}")
    assert res.status_code == 403


async def test_sub_minute_times_are_rejected_at_the_boundary(api, current, calendar, coach):
    current.user = coach
    res = await api.post(
        f"{P}/blocked-times",
        json={"blocked_date": MONDAY.isoformat(), "all_day": False, "start_time": "10:00:10", "end_time": "10:00:50"},
    )
    assert res.status_code == 422

    res = await api.post(
        f"{P}/calendars/{calendar.id}/rules",
        json={"day_of_week": 0, "start_time": "13:00:00", "end_time": "13:00:30"},
    )
    assert res.status_code == 422

    res = await api.get(f"{P}/slots", params={"calendar_id": str(calendar.id), "date": MONDAY.isoformat()})
    assert res.status_code == 200
    assert len(res.json()["slots"]) == 6
