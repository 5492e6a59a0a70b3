"""Water log: unit conversion, goal crossing and the water-intake task."""

import datetime as dt
from unittest.mock import patch

import pytest

from src.services.daily_progress import get_progress
from src.services.errors import InvalidEntryError, ProgressWriteError
from src.services.water_intake import (
    DEFAULT_GOAL_OZ,
    add_intake,
    get_intake,
    list_intake,
    remove_intake,
    to_ounces,
    update_goal,
)
from tests.conftest import add_progress

DAY = dt.date(2024, 1, 2)
NOW = dt.datetime(2024, 1, 2, 15, 0, tzinfo=dt.timezone.utc)


def water_done(db, challenge, day=DAY):
    row = get_progress(db, challenge.id, day)
    return bool(row and row.task_completed("water-intake"))


# =============================================================================
# UNITS
# =============================================================================


class TestToOunces:
    @pytest.mark.parametrize(
        "amount, unit, expected",
        [(16, "oz", 16), (2, "cups", 16), (500, "ml", 16.91), (1, "liters", 33.81)],
    )
    def test_conversion(self, amount, unit, expected):
        assert to_ounces(amount, unit) == expected

    @pytest.mark.parametrize("amount, unit", [(0, "oz"), (-4, "oz"), (True, "oz"), ("8", "oz"), (8, "gallons"), (8, None)])
    def test_rejected(self, amount, unit):
        with pytest.raises(InvalidEntryError):
            to_ounces(amount, unit)


# =============================================================================
# GOAL AND TASK
# =============================================================================


class TestAddRemove:
    def test_first_add_creates_day_with_default_goal(self, db, challenge):
        row, progress = add_intake(db, challenge, DAY, 16, now=NOW)

        assert row.amount == 16
        assert row.goal == DEFAULT_GOAL_OZ
        assert row.intake_log == [{"timestamp": NOW.isoformat(), "amount": 16, "unit": "oz"}]
        assert progress is None
        assert not water_done(db, challenge)

    def test_reaching_goal_completes_task(self, db, challenge):
        add_intake(db, challenge, DAY, 100, now=NOW)
        row, progress = add_intake(db, challenge, DAY, 4, unit="cups", now=NOW)

        assert row.amount == 132
        assert row.goal_met
        assert progress.task_completed("water-intake")
        assert progress.tasks_completed == 1
        assert len(row.intake_log) == 2

    def test_completion_keeps_other_tasks(self, db, challenge):
        add_progress(db, challenge, DAY, done=3)

        _, progress = add_intake(db, challenge, DAY, 128, now=NOW)

        assert progress.tasks_completed == 4

    def test_dropping_below_goal_uncompletes(self, db, challenge):
        add_intake(db, challenge, DAY, 130, now=NOW)

        row, progress = remove_intake(db, challenge, DAY, 8, now=NOW)

        assert row.amount == 122
        assert progress is not None
        assert not water_done(db, challenge)

    def test_remove_never_goes_negative(self, db, challenge):
        add_intake(db, challenge, DAY, 8, now=NOW)

        row, progress = remove_intake(db, challenge, DAY, 50, now=NOW)

        assert row.amount == 0
        assert progress is None

    def test_goal_change_crossing(self, db, challenge):
        add_intake(db, challenge, DAY, 100, now=NOW)

        _, progress = update_goal(db, challenge, DAY, 96, now=NOW)
        assert progress.task_completed("water-intake")

        _, progress = update_goal(db, challenge, DAY, 1, unit="liters", now=NOW)
        assert progress is None
        assert water_done(db, challenge)

        row, progress = update_goal(db, challenge, DAY, 4, unit="liters", now=NOW)
        assert row.goal == 135.26
        assert not progress.task_completed("water-intake")

    def test_task_write_failure_keeps_intake(self, db, challenge, caplog):
        with patch(
            "src.services.daily_progress.apply_task_updates",
            side_effect=ProgressWriteError("daily_progress write failed after 3 attempts"),
        ), caplog.at_level("WARNING"):
            row, progress = add_intake(db, challenge, DAY, 130, now=NOW)

        assert progress is None
        assert get_intake(db, challenge.id, DAY).amount == 130
        assert "auto complete failed" in caplog.text


class TestHistory:
    def test_recent_days_newest_first(self, db, challenge):
        for day in (dt.date(2024, 1, 1), dt.date(2024, 1, 5), dt.date(2024, 1, 9)):
            add_intake(db, challenge, day, 10, now=NOW)

        rows = list_intake(db, challenge.id, dt.date(2024, 1, 9), days=7)

        assert [r.date for r in rows] == [dt.date(2024, 1, 9), dt.date(2024, 1, 5)]
