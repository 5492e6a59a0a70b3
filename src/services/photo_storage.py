"""
진행 사진 업로드 (Supabase Storage REST API)

- 원본: {challenge_id}/{YYYY-MM-DD}/main_{timestamp}.{ext}
- 썸네일은 따로 올리지 않고 이미지 변환(render) 엔드포인트 URL 로 제공 (300x300 cover)
- 업로드 성공 후 progress-photo 과제는 라우터에서 자동 완료 처리
"""
from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import requests
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.config.settings import settings
from src.models.challenge import Challenge
from src.models.progress_photo import ProgressPhoto
from src.services.errors import InvalidPhotoError, PhotoStorageError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/heic": "heic",
    "image/heif": "heif",
}
THUMBNAIL_SIZE = 300
REQUEST_TIMEOUT = 30


@dataclass
class StoredPhoto:
    path: str
    url: str
    thumbnail_url: str


def validate_photo(content: bytes, content_type: Optional[str]) -> str:
    """return: 저장용 확장자"""
    if not content:
        raise InvalidPhotoError("empty file")
    if len(content) > MAX_FILE_SIZE:
        raise InvalidPhotoError(f"file too large (max {MAX_FILE_SIZE // 1024 // 1024}MB)")
    ext = ALLOWED_TYPES.get((content_type or "").lower())
    if ext is None:
        raise InvalidPhotoError("please upload a JPEG, PNG, or HEIC image")
    return ext


def build_path(challenge_id: int, day: dt.date, ext: str, timestamp_ms: Optional[int] = None) -> str:
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{challenge_id}/{day.isoformat()}/main_{ts}.{ext}"


def _base_url() -> str:
    if not settings.supabase_url or not settings.supabase_service_key:
        raise PhotoStorageError("photo storage is not configured")
    return settings.supabase_url.rstrip("/")


def _headers(content_type: Optional[str] = None) -> dict:
    headers = {
        "Authorization": f"Bearer {settings.supabase_service_key}",
        "apikey": settings.supabase_service_key,
    }
    if content_type:
        headers["Content-Type"] = content_type
    return headers


def public_url(path: str) -> str:
    return f"{_base_url()}/storage/v1/object/public/{settings.photo_bucket}/{path}"


def thumbnail_url(path: str, size: int = THUMBNAIL_SIZE) -> str:
    return (
        f"{_base_url()}/storage/v1/render/image/public/{settings.photo_bucket}/{path}"
        f"?width={size}&height={size}&resize=cover"
    )


def upload_photo(challenge_id: int, day: dt.date, content: bytes, content_type: Optional[str]) -> StoredPhoto:
    ext = validate_photo(content, content_type)
    path = build_path(challenge_id, day, ext)
    url = f"{_base_url()}/storage/v1/object/{settings.photo_bucket}/{path}"

    try:
        res = requests.post(
            url,
            data=content,
            headers={**_headers(content_type), "x-upsert": "false"},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.warning("[photos] upload request failed path=%s err=%s", path, e)
        raise PhotoStorageError("photo upload failed") from e

    if res.status_code >= 400:
        logger.warning("[photos] upload rejected path=%s status=%s body=%s", path, res.status_code, res.text[:200])
        raise PhotoStorageError(f"photo upload failed ({res.status_code})")

    return StoredPhoto(path=path, url=public_url(path), thumbnail_url=thumbnail_url(path))


def delete_object(path: str) -> None:
    try:
        res = requests.delete(
            f"{_base_url()}/storage/v1/object/{settings.photo_bucket}",
            json={"prefixes": [path]},
            headers=_headers("application/json"),
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        raise PhotoStorageError("photo delete failed") from e
    if res.status_code >= 400:
        raise PhotoStorageError(f"photo delete failed ({res.status_code})")


# --------------------- DB ---------------------
def save_photo_record(db: Session, challenge: Challenge, day: dt.date, stored: StoredPhoto) -> ProgressPhoto:
    row = ProgressPhoto(
        user_id=challenge.user_id,
        challenge_id=challenge.id,
        date=day,
        storage_path=stored.path,
        photo_url=stored.url,
        thumbnail_url=stored.thumbnail_url,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_photos(
    db: Session,
    user_id: str,
    challenge_id: Optional[int] = None,
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> List[ProgressPhoto]:
    stmt = select(ProgressPhoto).where(ProgressPhoto.user_id == user_id)
    if challenge_id is not None:
        stmt = stmt.where(ProgressPhoto.challenge_id == challenge_id)
    if start is not None:
        stmt = stmt.where(ProgressPhoto.date >= start)
    if end is not None:
        stmt = stmt.where(ProgressPhoto.date <= end)
    return db.execute(stmt.order_by(ProgressPhoto.date.desc(), ProgressPhoto.id.desc())).scalars().all()


def delete_photo(db: Session, user_id: str, photo_id: int) -> bool:
    row = db.execute(
        select(ProgressPhoto).where(ProgressPhoto.id == photo_id, ProgressPhoto.user_id == user_id)
    ).scalars().first()
    if row is None:
        return False
    delete_object(row.storage_path)
    db.delete(row)
    db.commit()
    return True
