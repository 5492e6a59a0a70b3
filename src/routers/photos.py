# 진행 사진 업로드/갤러리
import datetime as dt
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.auth.dependencies import get_active_challenge_or_404, get_current_user
from src.db.database import get_db
from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.routers.progress import resolve_day
from src.schemas.schema_photo import PhotoResponse
from src.services.daily_progress import complete_task
from src.services.errors import InvalidPhotoError, PhotoStorageError, ProgressWriteError
from src.services.photo_storage import delete_photo, list_photos, save_photo_record, upload_photo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photos", tags=["사진"])


@router.post("", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
def upload(
    file: UploadFile = File(...),
    date: str = Form(default="today"),
    current_user: UserProfile = Depends(get_current_user),
    challenge: Challenge = Depends(get_active_challenge_or_404),
    db: Session = Depends(get_db),
):
    """
    [프론트용 요약]

    POST /photos  (multipart/form-data)
    - file: 이미지 (JPEG/PNG/HEIC, 최대 10MB)
    - date: "today" 또는 YYYY-MM-DD (기본 today)
    - 업로드 성공하면 그날 progress-photo 과제가 자동 완료되고 photoUrl 이 기록됨
    - 400: 형식/용량 오류, 502: 스토리지 업로드 실패
    """
    target = resolve_day(date, challenge, current_user.timezone, writable=True)
    content = file.file.read()

    try:
        stored = upload_photo(challenge.id, target, content, file.content_type)
    except InvalidPhotoError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except PhotoStorageError as e:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(e))

    row = save_photo_record(db, challenge, target, stored)

    # 과제 자동 완료 실패해도 사진 업로드 자체는 성공 처리
    try:
        complete_task(db, challenge, target, "progress-photo", photo_url=stored.url)
    except (ProgressWriteError, SQLAlchemyError) as e:
        db.rollback()
        logger.warning("[photos] auto-complete failed challenge=%s date=%s err=%s", challenge.id, target, e)

    return PhotoResponse.model_validate(row)


@router.get("", response_model=List[PhotoResponse])
def gallery(
    start: Optional[dt.date] = Query(default=None),
    end: Optional[dt.date] = Query(default=None),
    challenge_id: Optional[int] = Query(default=None),
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [PhotoResponse.model_validate(p) for p in list_photos(db, current_user.id, challenge_id, start, end)]


@router.delete("/{photo_id}", status_code=status.HTTP_200_OK)
def remove(
    photo_id: int,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        deleted = delete_photo(db, current_user.id, photo_id)
    except PhotoStorageError as e:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(e))
    if not deleted:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Photo not found")
    return {"deleted": 1}
