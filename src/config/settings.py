from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # DB: DATABASE_URL wins, otherwise MySQL parts
    database_url: Optional[str] = None
    db_user: str = "root"
    db_pass: str = ""
    db_host: str = "localhost"
    db_port: Optional[int] = 3306
    db_name: str = "gothenine"

    # 인증 (Supabase JWT)
    jwt_secret: str = "change-me"
    jwt_audience: str = "authenticated"
    jwt_issuer: Optional[str] = None
    jwks_url: Optional[str] = None

    firebase_key_path: str = "firebase-key.json"

    supabase_url: str = ""
    supabase_service_key: str = ""
    photo_bucket: str = "progress-photos"

    default_timezone: str = "America/New_York"
    scheduler_timezone: str = "UTC"
    reminder_window_minutes: int = 5
    streak_check_hour: int = 12

    cors_origins: List[str] = ["*"]


settings = Settings()
