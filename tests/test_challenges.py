"""Challenge lifecycle and onboarding: one active challenge per user."""

import datetime as dt
from unittest.mock import patch

import pytest
from sqlalchemy import select

from src.models.challenge import Challenge
from src.models.notification import Notification
from src.models.users import UserProfile
from src.services.challenges import (
    get_active_challenge,
    get_or_create_active_challenge,
    list_challenges,
    restart_challenge,
)
from src.services.profiles import (
    complete_onboarding,
    get_or_create_preferences,
    get_or_create_profile,
    update_timezone,
)
from tests.conftest import TZ

# 2024-01-02 03:00 UTC = 뉴욕 2024-01-01 22:00
NOW = dt.datetime(2024, 1, 2, 3, 0, tzinfo=dt.timezone.utc)


def active_count(db, user_id):
    return len(
        db.execute(select(Challenge).where(Challenge.user_id == user_id, Challenge.is_active.is_(True)))
        .scalars()
        .all()
    )


# =============================================================================
# CHALLENGES
# =============================================================================


class TestActiveChallenge:
    def test_start_date_uses_local_calendar(self, db, profile):
        challenge = get_or_create_active_challenge(db, profile, NOW)

        assert challenge.start_date == dt.date(2024, 1, 1)
        assert challenge.end_date == dt.date(2024, 3, 15)
        assert challenge.active_user_id == profile.id

    def test_second_call_returns_the_same_challenge(self, db, profile):
        first = get_or_create_active_challenge(db, profile, NOW)
        second = get_or_create_active_challenge(db, profile, NOW)

        assert first.id == second.id
        assert active_count(db, profile.id) == 1

    def test_concurrent_create_reuses_existing(self, db, profile):
        first = get_or_create_active_challenge(db, profile, NOW)
        real_lookup = get_active_challenge
        calls = {"n": 0}

        def stale_lookup(session, user_id):
            # 첫 조회는 다른 요청이 아직 커밋 전인 것처럼 None
            calls["n"] += 1
            return None if calls["n"] == 1 else real_lookup(session, user_id)

        with patch("src.services.challenges.get_active_challenge", side_effect=stale_lookup):
            second = get_or_create_active_challenge(db, profile, NOW)

        assert second.id == first.id
        assert active_count(db, profile.id) == 1

    def test_restart_keeps_history(self, db, profile, challenge):
        later = dt.datetime(2024, 2, 1, 15, 0, tzinfo=dt.timezone.utc)

        new = restart_challenge(db, profile, later)

        assert new.id != challenge.id
        assert new.start_date == dt.date(2024, 2, 1)
        db.refresh(challenge)
        assert not challenge.is_active
        assert challenge.active_user_id is None
        assert active_count(db, profile.id) == 1
        assert [c.id for c in list_challenges(db, profile.id)] == [new.id, challenge.id]


# =============================================================================
# PROFILES / ONBOARDING
# =============================================================================


class TestProfiles:
    def test_profile_created_on_first_sight(self, db):
        profile = get_or_create_profile(db, "new-user")
        assert profile.timezone
        assert not profile.onboarding_completed
        assert get_or_create_profile(db, "new-user").id == "new-user"
        assert len(db.execute(select(UserProfile)).scalars().all()) == 1

    def test_invalid_timezone_rejected(self, db, profile):
        with pytest.raises(ValueError):
            update_timezone(db, profile, "Not/A_Zone")
        assert update_timezone(db, profile, "Asia/Seoul").timezone == "Asia/Seoul"

    def test_preferences_defaults(self, db, profile):
        prefs = get_or_create_preferences(db, profile.id)
        assert prefs.daily_reminder_time == "06:00"
        assert get_or_create_preferences(db, profile.id) is prefs


class TestOnboarding:
    def test_double_submit_yields_one_active_challenge(self, db):
        user = get_or_create_profile(db, "user-2")

        _, first = complete_onboarding(db, user, "Alex", TZ, True, NOW)
        _, second = complete_onboarding(db, user, "Alex", TZ, True, NOW)

        assert first.id == second.id
        assert active_count(db, "user-2") == 1
        assert get_or_create_preferences(db, "user-2").enabled

    def test_welcome_sent_once(self, db):
        user = get_or_create_profile(db, "user-2")

        complete_onboarding(db, user, "Alex", TZ, now=NOW)
        complete_onboarding(db, user, "Alex B", TZ, now=NOW)

        rows = db.execute(select(Notification).where(Notification.user_id == "user-2")).scalars().all()
        assert len(rows) == 1
        assert rows[0].title.startswith("Welcome")
        assert user.display_name == "Alex B"

    def test_bad_timezone(self, db):
        user = get_or_create_profile(db, "user-2")
        with pytest.raises(ValueError):
            complete_onboarding(db, user, "Alex", "Nowhere/Land", now=NOW)
        assert get_active_challenge(db, "user-2") is None
