# src/main.py
import logging
import os
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

import firebase_admin
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from firebase_admin import credentials
from sqlalchemy.exc import SQLAlchemyError

import src.models  # noqa: F401  create_all 이 모든 테이블을 인식하도록
from src.config.settings import settings
from src.db.database import Base, SessionLocal, engine
from src.routers import (
    challenges,
    community,
    fcm,
    notifications,
    onboarding,
    photos,
    profile,
    progress,
    stats,
    sync,
    walks,
    water,
    workouts,
)
from src.services.errors import UnknownTaskError
from src.services.reminders import process_due_reminders
from src.services.streak_alerts import process_streak_alerts

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)  # 테이블 생성만 (기존 테이블 컬럼 추가는 못함)


def init_firebase() -> bool:
    key_path = settings.firebase_key_path

    if firebase_admin._apps:
        logger.info("[firebase] already initialized")
        return True

    if not os.path.exists(key_path):
        # 키 파일이 없으면 경고만 (푸시 기능만 제한, 서버는 정상 기동)
        logger.warning("[firebase] '%s' not found -> push notifications disabled", key_path)
        return False

    firebase_admin.initialize_app(credentials.Certificate(key_path))
    logger.info("[firebase] connected")
    return True


def _reminder_job():
    """매 1분: 유저별 로컬 시각 기준 리마인더 푸시"""
    db = SessionLocal()
    try:
        sent = process_due_reminders(db)
        if sent:
            logger.info("[scheduler] reminders sent=%d", sent)
    except Exception as e:
        db.rollback()
        logger.exception("[scheduler][reminders] %s", e)
    finally:
        db.close()


def _streak_job():
    """매일 1회: 스트릭 달성 점검 (토글 시점에 못 잡은 것 보완)"""
    db = SessionLocal()
    try:
        process_streak_alerts(db)
    except Exception as e:
        db.rollback()
        logger.exception("[scheduler][streak_alerts] %s", e)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - 앱 시작 시 Firebase 초기화 + 스케줄러 등록
    - 매 1분(0초)마다 리마인더, 매일 streak_check_hour 시에 스트릭 점검
    - 앱 종료 시 스케줄러 종료
    """
    init_firebase()

    scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.scheduler_timezone))
    scheduler.add_job(_reminder_job, CronTrigger(second=0))
    scheduler.add_job(_streak_job, CronTrigger(hour=settings.streak_check_hour, minute=0))
    scheduler.start()

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        logger.info("[scheduler] stopped")


app = FastAPI(title="Go the Nine API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("[db] %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable. Please try again."},
    )


@app.exception_handler(UnknownTaskError)
async def unknown_task_handler(request: Request, exc: UnknownTaskError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# 라우터 등록
app.include_router(profile.router)
app.include_router(onboarding.router)
app.include_router(challenges.router)
app.include_router(progress.router)
app.include_router(stats.router)
app.include_router(community.router)
app.include_router(notifications.router)
app.include_router(fcm.router)
app.include_router(photos.router)
app.include_router(sync.router)
app.include_router(water.router)
app.include_router(workouts.router)
app.include_router(walks.router)


# 확인용 엔드포인트
@app.get("/")
async def root():
    return {
        "message": "Go the Nine API is running",
        "version": "1.0.0"
    }
