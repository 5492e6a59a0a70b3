"""HTTP surface: auth, onboarding, toggles (including 409/503), reads and settings."""

import datetime as dt
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select

from src.models.challenge import Challenge
from src.models.push_subscription import PushSubscription
from src.services.errors import ProgressWriteError
from src.services.inflight import task_toggle_guard, toggle_key
from src.services.task_definitions import TASK_IDS, TOTAL_TASKS
from src.services.timezone import today_in_timezone
from tests.conftest import TZ, auth_headers, make_token

HEADERS = auth_headers()


@pytest.fixture
def onboarded(client):
    res = client.post(
        "/onboarding",
        json={"display_name": "Sam", "timezone": TZ, "notifications_enabled": True},
        headers=HEADERS,
    )
    assert res.status_code == 200
    return res.json()


@pytest.fixture
def today():
    return today_in_timezone(TZ)


def toggle(client, task_id, completed=True, day="today"):
    return client.post(f"/progress/{day}/tasks/{task_id}/toggle", json={"completed": completed}, headers=HEADERS)


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:
    def test_missing_token(self, client):
        res = client.get("/profile/me")
        assert res.status_code == 401
        assert res.json()["detail"] == "Missing bearer token"

    def test_bad_signature(self, client):
        headers = {"Authorization": f"Bearer {make_token('user-1', secret='wrong')}"}
        assert client.get("/profile/me", headers=headers).status_code == 401

    def test_expired_token(self, client):
        token = make_token("user-1", exp=dt.datetime.now(dt.timezone.utc) - dt.timedelta(minutes=5))
        assert client.get("/profile/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_profile_created_on_first_request(self, client):
        res = client.get("/profile/me", headers=HEADERS)
        assert res.status_code == 200
        assert res.json()["id"] == "user-1"
        assert res.json()["onboarding_completed"] is False

    def test_no_active_challenge_before_onboarding(self, client):
        res = client.get("/challenges/active", headers=HEADERS)
        assert res.status_code == 404


# =============================================================================
# ONBOARDING / CHALLENGES
# =============================================================================


class TestOnboarding:
    def test_creates_profile_and_day_one(self, onboarded, today):
        assert onboarded["profile"]["display_name"] == "Sam"
        assert onboarded["profile"]["onboarding_completed"] is True
        assert onboarded["challenge"]["current_day"] == 1
        assert onboarded["challenge"]["start_date"] == today.isoformat()

    def test_resubmit_keeps_one_challenge(self, client, onboarded, db):
        again = client.post("/onboarding", json={"display_name": "Sam", "timezone": TZ}, headers=HEADERS)

        assert again.json()["challenge"]["id"] == onboarded["challenge"]["id"]
        rows = db.execute(select(Challenge).where(Challenge.is_active.is_(True))).scalars().all()
        assert len(rows) == 1

    def test_unknown_timezone(self, client):
        res = client.post("/onboarding", json={"display_name": "Sam", "timezone": "Moon/Base"}, headers=HEADERS)
        assert res.status_code == 400

    def test_restart_and_history(self, client, onboarded):
        res = client.post("/challenges/restart", json={"name": "Round 2"}, headers=HEADERS)
        assert res.status_code == 201
        assert res.json()["name"] == "Round 2"

        history = client.get("/challenges/history", headers=HEADERS).json()
        assert [c["is_active"] for c in history] == [True, False]

    def test_day_number(self, client, onboarded, today):
        body = client.get("/challenges/active/day", headers=HEADERS).json()
        assert body["day_number"] == 1
        assert body["total_days"] == 75
        assert body["date"] == today.isoformat()


# =============================================================================
# PROGRESS WRITES
# =============================================================================


class TestToggle:
    def test_toggle_and_read_back(self, client, onboarded, today):
        res = toggle(client, "water-intake")

        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "confirmed"
        assert body["task"]["completed"] is True
        assert body["progress"]["tasks_completed"] == 1

        day = client.get("/progress/today", headers=HEADERS).json()
        assert day["date"] == today.isoformat()
        water = next(t for t in day["tasks"] if t["id"] == "water-intake")
        assert water["completed"] is True
        assert water["completed_at"]

    def test_completing_all_tasks_notifies(self, client, onboarded):
        for task_id in TASK_IDS:
            res = toggle(client, task_id)
        assert res.json()["progress"]["is_complete"] is True
        assert res.json()["progress"]["tasks_completed"] == TOTAL_TASKS

        titles = [n["title"] for n in client.get("/notifications", headers=HEADERS).json()]
        assert "Day Complete!" in titles

    def test_unknown_task(self, client, onboarded):
        assert toggle(client, "ice-bath").status_code == 404

    def test_future_day_rejected(self, client, onboarded, today):
        res = toggle(client, "water-intake", day=(today + dt.timedelta(days=1)).isoformat())
        assert res.status_code == 400

    def test_day_before_start_rejected(self, client, onboarded, today):
        res = toggle(client, "water-intake", day=(today - dt.timedelta(days=1)).isoformat())
        assert res.status_code == 400

    def test_second_toggle_while_in_flight(self, client, onboarded, today):
        key = toggle_key("user-1", today, "water-intake")
        task_toggle_guard.acquire(key)
        try:
            res = toggle(client, "water-intake")
        finally:
            task_toggle_guard.release(key)

        assert res.status_code == 409
        assert toggle(client, "water-intake").status_code == 200

    def test_write_failure_rolls_back(self, client, onboarded, today):
        toggle(client, "follow-diet")

        with patch("src.routers.progress.set_task_completed", side_effect=ProgressWriteError("db down")):
            res = toggle(client, "water-intake")

        assert res.status_code == 503
        detail = res.json()["detail"]
        assert detail["status"] == "rolled_back"
        assert detail["task_id"] == "water-intake"
        assert detail["task"] == {"completed": False, "completedAt": None}
        assert not task_toggle_guard.is_in_flight(toggle_key("user-1", today, "water-intake"))

        day = client.get("/progress/today", headers=HEADERS).json()
        assert day["tasks_completed"] == 1

    def test_details_and_notes(self, client, onboarded):
        res = client.patch(
            "/progress/today/tasks/workout-indoor",
            json={"completed": True, "duration": 50, "notes": "intervals"},
            headers=HEADERS,
        )
        assert res.status_code == 200
        indoor = next(t for t in res.json()["tasks"] if t["id"] == "workout-indoor")
        assert indoor["duration"] == 50

        res = client.put("/progress/today/notes", json={"notes": "felt strong"}, headers=HEADERS)
        assert res.json()["notes"] == "felt strong"
        assert res.json()["tasks_completed"] == 1

    def test_batch_is_all_or_nothing(self, client, onboarded):
        res = client.post(
            "/progress/today/batch",
            json={"tasks": {"water-intake": {"completed": True}, "sauna": {"completed": True}}},
            headers=HEADERS,
        )
        assert res.status_code == 400
        assert client.get("/progress/today", headers=HEADERS).json()["tasks_completed"] == 0

        res = client.post(
            "/progress/today/batch",
            json={"tasks": {"water-intake": {"completed": True}, "follow-diet": {"completed": True}}},
            headers=HEADERS,
        )
        assert res.json()["tasks_completed"] == 2


# =============================================================================
# READS
# =============================================================================


class TestReads:
    def test_calendar(self, client, onboarded):
        toggle(client, "water-intake")
        body = client.get("/challenges/calendar", headers=HEADERS).json()

        assert len(body["days"]) == 75
        assert body["days"][0]["status"] == "today"
        assert body["days"][0]["tasks_completed"] == 1
        assert body["days"][1]["status"] == "future"
        assert body["days"][1]["hidden"] is True
        assert body["stats"]["future_days"] == 74

    def test_streak(self, client, onboarded):
        for task_id in TASK_IDS:
            toggle(client, task_id)
        body = client.get("/challenges/streak", headers=HEADERS).json()
        assert body["streak"]["current_streak"] == 1
        assert body["milestones"]["next"] == 7

    def test_stats(self, client, onboarded):
        toggle(client, "water-intake")
        weekly = client.get("/stats/weekly", headers=HEADERS).json()
        assert weekly["total_days"] == 1
        assert len(weekly["tasks_breakdown"]) == TOTAL_TASKS
        assert client.get("/stats/monthly", headers=HEADERS).status_code == 200
        assert client.get("/stats/overall", headers=HEADERS).json()["total_days"] == 1
        assert len(client.get("/stats/trends", headers=HEADERS).json()) == 1

    def test_leaderboard(self, client, onboarded):
        body = client.get("/community/leaderboard?sort=name", headers=HEADERS).json()
        assert body["total_members"] == 1
        assert body["members"][0]["is_current_user"] is True
        assert client.get("/community/leaderboard?sort=karma", headers=HEADERS).status_code == 400

    def test_task_definitions_public(self, client):
        tasks = client.get("/progress/tasks").json()
        assert [t["id"] for t in tasks] == list(TASK_IDS)


# =============================================================================
# NOTIFICATIONS / PREFERENCES / SYNC
# =============================================================================


class TestNotifications:
    def test_inbox_flow(self, client, onboarded):
        inbox = client.get("/notifications", headers=HEADERS).json()
        assert [n["title"] for n in inbox] == ["Welcome to 75 Hard! 👋"]
        assert client.get("/notifications/unread-count", headers=HEADERS).json() == {"unread": 1}

        client.post(f"/notifications/{inbox[0]['id']}/read", headers=HEADERS)
        assert client.get("/notifications/unread-count", headers=HEADERS).json() == {"unread": 0}

        assert client.delete("/notifications", headers=HEADERS).json() == {"deleted": 1}
        assert client.post("/notifications/999/read", headers=HEADERS).status_code == 404

    def test_preferences(self, client, onboarded):
        prefs = client.get("/notifications/preferences", headers=HEADERS).json()
        assert prefs["enabled"] is True

        res = client.put(
            "/notifications/preferences",
            json={"daily_reminder_time": "7:05", "water_reminder_interval": 3},
            headers=HEADERS,
        )
        assert res.json()["daily_reminder_time"] == "07:05"
        assert res.json()["water_reminder_interval"] == 3

        bad = client.put("/notifications/preferences", json={"photo_reminder_time": "25:00"}, headers=HEADERS)
        assert bad.status_code == 422

    def test_push_token_register_and_remove(self, client, onboarded, db):
        token = "fcm-token-0123456789"
        assert client.post("/fcm/token", json={"token": token}, headers=HEADERS).status_code == 201
        assert client.delete(f"/fcm/token?token={token}", headers=HEADERS).json() == {"updated": 1}

        db.expire_all()
        row = db.execute(select(PushSubscription)).scalars().one()
        assert row.is_active is False

    def test_sync(self, client, onboarded, today):
        items = [
            {"id": "a", "type": "daily_progress", "data": {"date": today.isoformat(), "taskId": "water-intake", "completed": True}},
            {"id": "b", "type": "daily_progress", "data": {"date": today.isoformat(), "taskId": "nope"}, "retries": 2},
        ]
        body = client.post("/sync", json={"items": items}, headers=HEADERS).json()

        assert body["synced"] == ["a"]
        assert body["failed"] == []
        assert [i["id"] for i in body["dropped"]] == ["b"]
        assert body["dropped"][0]["retries"] == 3
        titles = [n["title"] for n in client.get("/notifications", headers=HEADERS).json()]
        assert "Sync Failed" in titles


# =============================================================================
# PHOTOS
# =============================================================================


class TestPhotos:
    def upload(self, client, content_type="image/jpeg"):
        res_ok = MagicMock(status_code=200, text="{}")
        with patch("src.services.photo_storage.requests.post", return_value=res_ok):
            return client.post(
                "/photos",
                files={"file": ("me.jpg", b"\xff\xd8\xff\xe0jpeg-bytes", content_type)},
                data={"date": "today"},
                headers=HEADERS,
            )

    def test_upload_completes_photo_task(self, client, onboarded):
        res = self.upload(client)

        assert res.status_code == 201
        assert res.json()["thumbnail_url"].endswith("resize=cover")

        day = client.get("/progress/today", headers=HEADERS).json()
        photo = next(t for t in day["tasks"] if t["id"] == "progress-photo")
        assert photo["completed"] is True
        assert photo["photo_url"] == res.json()["photo_url"]

        gallery = client.get("/photos", headers=HEADERS).json()
        assert [p["id"] for p in gallery] == [res.json()["id"]]

    def test_wrong_type_rejected(self, client, onboarded):
        assert self.upload(client, "image/gif").status_code == 400
        assert client.get("/photos", headers=HEADERS).json() == []


# =============================================================================
# WATER / WORKOUTS / WALKS
# =============================================================================


class TestActivityLogs:
    def test_water_goal_completes_task(self, client, onboarded, today):
        empty = client.get("/water/today", headers=HEADERS).json()
        assert empty["amount"] == 0
        assert empty["goal"] == 128

        client.post("/water/today/add", json={"amount": 96, "unit": "oz"}, headers=HEADERS)
        body = client.post("/water/today/add", json={"amount": 1, "unit": "liters"}, headers=HEADERS).json()

        assert body["intake"]["goal_met"] is True
        water = next(t for t in body["progress"]["tasks"] if t["id"] == "water-intake")
        assert water["completed"] is True

        body = client.post("/water/today/remove", json={"amount": 16}, headers=HEADERS).json()
        water = next(t for t in body["progress"]["tasks"] if t["id"] == "water-intake")
        assert water["completed"] is False

        history = client.get("/water/history", headers=HEADERS).json()
        assert [h["date"] for h in history] == [today.isoformat()]

    def test_water_bad_input(self, client, onboarded, today):
        assert client.post("/water/today/add", json={"amount": 8, "unit": "buckets"}, headers=HEADERS).status_code == 422
        assert client.post("/water/today/add", json={"amount": -8}, headers=HEADERS).status_code == 422
        tomorrow = (today + dt.timedelta(days=1)).isoformat()
        assert client.post(f"/water/{tomorrow}/add", json={"amount": 8}, headers=HEADERS).status_code == 400

    def test_workout_then_walk(self, client, onboarded):
        res = client.post("/workouts", json={"duration": 2700}, headers=HEADERS)
        assert res.status_code == 201
        assert res.json()["task_completed"] == "workout-indoor"

        res = client.post("/walks", json={"duration": 2900, "distance": 2.1}, headers=HEADERS)
        assert res.status_code == 201
        assert res.json()["task_completed"] == "workout-outdoor"
        assert res.json()["progress"]["tasks_completed"] == 2

        assert client.get("/workouts/stats", headers=HEADERS).json()["count"] == 1
        assert client.get("/walks/stats", headers=HEADERS).json()["count"] == 1
        assert client.get("/walks/today/outdoor", headers=HEADERS).json()["outdoor_walk"] is True
        assert len(client.get("/workouts", headers=HEADERS).json()) == 1
        assert len(client.get("/walks", headers=HEADERS).json()) == 1

    def test_last_task_through_water_notifies(self, client, onboarded):
        for task_id in TASK_IDS:
            if task_id != "water-intake":
                toggle(client, task_id)

        body = client.post("/water/today/add", json={"amount": 128}, headers=HEADERS).json()

        assert body["progress"]["is_complete"] is True
        titles = [n["title"] for n in client.get("/notifications", headers=HEADERS).json()]
        assert "Day Complete!" in titles
