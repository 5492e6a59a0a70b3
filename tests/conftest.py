"""Shared fixtures: in-memory SQLite engine, HS256 tokens, seeded users/challenges."""

# pylint: disable=redefined-outer-name

import datetime as dt
import os
from types import SimpleNamespace

# settings 가 import 시점에 env 를 읽으므로 src import 전에 설정
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_AUDIENCE"] = "authenticated"
os.environ["FIREBASE_KEY_PATH"] = "missing-firebase-key.json"
os.environ["SUPABASE_URL"] = "https://project.supabase.co"
os.environ["SUPABASE_SERVICE_KEY"] = "service-role-key"
os.environ.pop("JWKS_URL", None)
os.environ.pop("JWT_ISSUER", None)

import jwt
import pytest
from fastapi.testclient import TestClient

from src.db.database import Base, SessionLocal, engine
from src.main import app
from src.models.challenge import Challenge
from src.models.daily_progress import DailyProgress
from src.models.users import UserProfile
from src.services.task_definitions import TASK_IDS, TOTAL_TASKS
from src.services.timezone import challenge_end_date

TZ = "America/New_York"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def make_token(sub: str, secret: str = "test-secret", **claims) -> str:
    payload = {
        "sub": sub,
        "aud": "authenticated",
        "exp": dt.datetime.now(dt.timezone.utc) + dt.timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(sub: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}


def tasks_map(done: int):
    """앞에서부터 done 개 과제가 완료된 tasks JSON"""
    return {
        task_id: {"completed": i < done, "completedAt": "2024-01-01T12:00:00+00:00" if i < done else None}
        for i, task_id in enumerate(TASK_IDS)
    }


def record(day: dt.date, done: int = TOTAL_TASKS) -> SimpleNamespace:
    """DailyProgress 와 같은 속성을 가진 가짜 기록 (순수 함수 테스트용)"""
    return SimpleNamespace(
        date=day,
        tasks=tasks_map(done),
        tasks_completed=done,
        is_complete=done == TOTAL_TASKS,
    )


def add_progress(db, challenge: Challenge, day: dt.date, done: int = TOTAL_TASKS) -> DailyProgress:
    row = DailyProgress(
        user_id=challenge.user_id,
        challenge_id=challenge.id,
        date=day,
        tasks=tasks_map(done),
        tasks_completed=done,
        is_complete=done == TOTAL_TASKS,
    )
    db.add(row)
    db.commit()
    return row


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    # context manager 로 열지 않음 → lifespan(Firebase/스케줄러) 안 뜸
    return TestClient(app)


@pytest.fixture
def profile(db):
    row = UserProfile(id="user-1", display_name="Sam", timezone=TZ, onboarding_completed=True)
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def challenge_factory(db):
    def _make(user: UserProfile, start: dt.date, active: bool = True) -> Challenge:
        row = Challenge(
            user_id=user.id,
            start_date=start,
            end_date=challenge_end_date(start),
            is_active=active,
            active_user_id=user.id if active else None,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def challenge(profile, challenge_factory):
    return challenge_factory(profile, dt.date(2024, 1, 1))
