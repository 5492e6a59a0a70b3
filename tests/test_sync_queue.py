"""Offline queue replay: per-item application, retry counting, drop after three."""

import datetime as dt
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from src.models.daily_progress import DailyProgress
from src.models.notification import Notification
from src.services.daily_progress import get_progress
from src.services.sync_queue import MAX_RETRIES, SyncItem, replay_queue
from tests.conftest import auth_headers

DAY = dt.date(2024, 1, 2)
# 뉴욕 2024-01-10 정오
NOW = dt.datetime(2024, 1, 10, 17, 0, tzinfo=dt.timezone.utc)


def item(item_id, data, retries=0, type_="daily_progress", action="update"):
    return SyncItem(id=item_id, type=type_, action=action, data=data, retries=retries)


class TestReplayQueue:
    def test_valid_items_applied(self, db, profile, challenge):
        items = [
            item("a", {"date": "2024-01-02", "taskId": "water-intake", "completed": True}),
            item("b", {"date": "2024-01-02", "tasks": {"follow-diet": {"completed": True}}}),
            item("c", {"date": "2024-01-02", "notes": "rainy"}, type_="daily_notes"),
        ]

        result = replay_queue(db, profile, items)

        assert result.synced == ["a", "b", "c"]
        row = get_progress(db, challenge.id, DAY)
        assert row.tasks_completed == 2
        assert row.notes == "rainy"

    def test_failure_counts_a_retry(self, db, profile, challenge):
        bad = item("x", {"date": "2024-01-02", "taskId": "cold-plunge", "completed": True})

        result = replay_queue(db, profile, [bad])

        assert result.synced == []
        assert [i.id for i in result.failed] == ["x"]
        assert result.failed[0].retries == 1
        assert "cold-plunge" in result.failed[0].error
        assert result.dropped == []

    def test_one_bad_item_does_not_block_the_rest(self, db, profile, challenge):
        items = [
            item("bad", {"taskId": "water-intake", "completed": True}),
            item("good", {"date": "2024-01-02", "taskId": "water-intake", "completed": True}),
        ]

        result = replay_queue(db, profile, items)

        assert result.synced == ["good"]
        assert [i.id for i in result.failed] == ["bad"]

    def test_dropped_after_max_retries(self, db, profile, challenge, caplog):
        doomed = item("z", {"date": "2024-01-02", "taskId": "cold-plunge"}, retries=MAX_RETRIES - 1)

        with caplog.at_level("WARNING"):
            result = replay_queue(db, profile, [doomed])

        assert result.failed == []
        assert [i.id for i in result.dropped] == ["z"]
        assert result.dropped[0].retries == MAX_RETRIES
        assert "dropping item=z" in caplog.text

        inbox = db.execute(select(Notification)).scalars().all()
        assert [n.title for n in inbox] == ["Sync Failed"]
        assert "after 3 attempts" in inbox[0].description

    def test_delete_rejected(self, db, profile, challenge):
        result = replay_queue(db, profile, [item("d", {"date": "2024-01-02"}, action="delete")])
        assert result.failed[0].error == "daily_progress records cannot be deleted"

    def test_no_active_challenge(self, db, profile):
        result = replay_queue(db, profile, [item("n", {"date": "2024-01-02", "taskId": "water-intake"})])
        assert result.failed[0].retries == 1

    def test_drop_notification_failure_does_not_stop_batch(self, db, profile, challenge, caplog):
        items = [
            item("z", {"date": "2024-01-02", "taskId": "cold-plunge", "completed": True}, retries=MAX_RETRIES - 1),
            item("ok", {"date": "2024-01-02", "taskId": "water-intake", "completed": True}),
        ]
        broken = OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))

        with patch("src.services.sync_queue.notify_sync_failed", side_effect=broken), caplog.at_level("WARNING"):
            result = replay_queue(db, profile, items)

        assert [i.id for i in result.dropped] == ["z"]
        assert result.synced == ["ok"]
        assert "drop notification failed item=z" in caplog.text
        assert get_progress(db, challenge.id, DAY).task_completed("water-intake")


# =============================================================================
# MALFORMED PAYLOADS
# =============================================================================


class TestMalformedItems:
    @pytest.mark.parametrize(
        "data, message",
        [
            ({"date": "2024-01-02", "tasks": {"water-intake": True}}, "must be an object"),
            ({"date": "2024-01-02", "tasks": {"water-intake": {"completed": "yes"}}}, "true or false"),
            ({"date": "2024-01-02", "tasks": {"water-intake": {"done": True}}}, "unexpected fields"),
            ({"date": "2024-01-02", "tasks": {"workout-indoor": {"duration": "long"}}}, "whole number"),
            ({"date": "2024-01-02", "tasks": ["water-intake"]}, "no tasks"),
            ({"date": "2024-01-02", "taskId": "water-intake"}, "no completed flag"),
            ({"date": "2024-01-02", "challenge_id": "abc", "taskId": "water-intake", "completed": True}, "bad challenge_id"),
            ({"date": ["2024-01-02"], "taskId": "water-intake", "completed": True}, "Unable to parse"),
        ],
    )
    def test_rejected_and_counted(self, db, profile, challenge, data, message):
        result = replay_queue(db, profile, [item("m", data)], now=NOW)

        assert result.synced == []
        assert result.failed[0].retries == 1
        assert message in result.failed[0].error
        assert get_progress(db, challenge.id, DAY) is None

    def test_malformed_item_eventually_dropped(self, db, profile, challenge):
        queued = item("m", {"date": "2024-01-02", "tasks": {"water-intake": True}})

        for attempt in range(1, MAX_RETRIES):
            result = replay_queue(db, profile, [queued], now=NOW)
            assert result.failed[0].retries == attempt

        result = replay_queue(db, profile, [queued], now=NOW)
        assert result.failed == []
        assert [i.id for i in result.dropped] == ["m"]

    def test_http_sync_reports_malformed_item(self, client, db, challenge):
        payload = {"items": [{"id": "x", "type": "daily_progress", "data": {"date": "2024-01-02", "tasks": {"water-intake": True}}}]}
        res = client.post("/sync", json=payload, headers=auth_headers())

        assert res.status_code == 200
        assert res.json()["failed"][0]["retries"] == 1


# =============================================================================
# CHALLENGE WINDOW
# =============================================================================


class TestDateWindow:
    def test_out_of_window_items_not_saved(self, db, profile, challenge):
        items = [
            item("before", {"date": "2023-06-01", "taskId": "water-intake", "completed": True}),
            item("after", {"date": "2024-03-16", "taskId": "water-intake", "completed": True}),
            item("future", {"date": "2024-01-11", "taskId": "water-intake", "completed": True}),
        ]

        result = replay_queue(db, profile, items, now=NOW)

        assert result.synced == []
        assert [i.id for i in result.failed] == ["before", "after", "future"]
        assert "outside the challenge" in result.failed[0].error
        assert "future" in result.failed[2].error
        assert db.execute(select(DailyProgress)).scalars().all() == []

    def test_today_follows_user_timezone(self, db, profile, challenge):
        # UTC 로는 11일이지만 뉴욕은 아직 10일 밤
        late_evening = dt.datetime(2024, 1, 11, 3, 0, tzinfo=dt.timezone.utc)
        items = [
            item("today", {"date": "2024-01-10", "taskId": "water-intake", "completed": True}),
            item("tomorrow", {"date": "2024-01-11", "taskId": "water-intake", "completed": True}),
        ]

        result = replay_queue(db, profile, items, now=late_evening)

        assert result.synced == ["today"]
        assert [i.id for i in result.failed] == ["tomorrow"]


# =============================================================================
# WATER / WORKOUT / WALK RECORDS
# =============================================================================


class TestRecordItems:
    def test_records_complete_their_tasks(self, db, profile, challenge):
        items = [
            item("w", {"date": "2024-01-02", "amount": 130, "unit": "oz"}, type_="water_intake", action="create"),
            item("k", {"date": "2024-01-02", "duration": 2700}, type_="workout_history", action="create"),
            item(
                "o",
                {"date": "2024-01-02", "duration": 3000, "distance": 5.2, "distance_unit": "km"},
                type_="walk_history",
                action="create",
            ),
        ]

        result = replay_queue(db, profile, items, now=NOW)

        assert result.synced == ["w", "k", "o"]
        row = get_progress(db, challenge.id, DAY)
        assert row.task_completed("water-intake")
        assert row.task_completed("workout-indoor")
        assert row.task_completed("workout-outdoor")
        assert row.tasks_completed == 3

    @pytest.mark.parametrize(
        "type_, data, message",
        [
            ("water_intake", {"date": "2024-01-02", "amount": "lots"}, "amount must be a number"),
            ("water_intake", {"date": "2024-01-02", "amount": 8, "unit": "buckets"}, "unknown unit"),
            ("workout_history", {"date": "2024-01-02", "duration": -5}, "duration"),
            ("walk_history", {"date": "2024-01-02", "duration": 600, "walk_type": "swim"}, "walk type"),
        ],
    )
    def test_bad_records_counted(self, db, profile, challenge, type_, data, message):
        result = replay_queue(db, profile, [item("r", data, type_=type_, action="create")], now=NOW)

        assert result.failed[0].retries == 1
        assert message in result.failed[0].error
