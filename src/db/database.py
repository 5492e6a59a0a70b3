# DB 연결 설정 (MySQL 기본, DATABASE_URL로 교체 가능)
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from src.config.settings import settings


def _build_url():
    if settings.database_url:
        return make_url(settings.database_url)
    return URL.create(
        "mysql+pymysql",
        username=settings.db_user,
        password=settings.db_pass,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
    )


url = _build_url()

if url.get_backend_name() == "sqlite":
    # 테스트/로컬용: 모든 세션이 커넥션 하나를 공유
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(
        url,
        pool_pre_ping=True,     # 끊긴 커넥션 자동 감지
        pool_recycle=1800,      # 30분마다 커넥션 새로고침
        pool_size=5,
        max_overflow=10,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# 의존성 주입을 위한 데이터베이스 세션 생성기
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
