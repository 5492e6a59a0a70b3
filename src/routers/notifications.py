from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import UserProfile
from src.schemas.schema_notification import (
    NotificationItem,
    PreferencesResponse,
    PreferencesUpdateRequest,
    UnreadCountResponse,
)
from src.services.notifications import (
    DEFAULT_LIMIT,
    clear_all,
    delete_notification,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
    unread_count,
)
from src.services.profiles import get_or_create_preferences

router = APIRouter(prefix="/notifications", tags=["알림"])


@router.get("", response_model=List[NotificationItem])
def get_notifications(
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """
    [프론트용 요약]

    ✅ GET /notifications?limit=50
    - 로그인 유저의 앱 알림 (최신순)
    - type: achievement | reminder | progress | system
    """
    return [NotificationItem.model_validate(n) for n in list_notifications(db, current_user.id, limit)]


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    return UnreadCountResponse(unread=unread_count(db, current_user.id))


@router.post("/{notification_id}/read", status_code=status.HTTP_200_OK)
def read_one(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    updated = mark_as_read(db, current_user.id, notification_id)
    if not updated:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Notification not found")
    return {"updated": updated}


@router.post("/read-all", status_code=status.HTTP_200_OK)
def read_all(
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    return {"updated": mark_all_as_read(db, current_user.id)}


@router.delete("/{notification_id}", status_code=status.HTTP_200_OK)
def delete_one(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    deleted = delete_notification(db, current_user.id, notification_id)
    if not deleted:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Notification not found")
    return {"deleted": deleted}


@router.delete("", status_code=status.HTTP_200_OK)
def clear_all_notifications(
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """
    DELETE /notifications
    - 로그인 유저의 알림 전부 삭제 (Response: {"deleted": 5})
    """
    return {"deleted": clear_all(db, current_user.id)}


# --------------------- 리마인더 설정 ---------------------
@router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    return PreferencesResponse.model_validate(get_or_create_preferences(db, current_user.id))


@router.put("/preferences", response_model=PreferencesResponse)
def update_preferences(
    body: PreferencesUpdateRequest,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """
    [프론트용 요약]

    PUT /notifications/preferences
    - 보낸 필드만 수정, 시각은 "HH:MM" (유저 타임존 기준 로컬 시각)
    - enabled=false 면 리마인더/스트릭 푸시 전부 안 나감 (앱 알림은 유지)
    """
    prefs = get_or_create_preferences(db, current_user.id)
    for key, value in body.model_dump(exclude_none=True).items():
        setattr(prefs, key, value)
    db.commit()
    db.refresh(prefs)
    return PreferencesResponse.model_validate(prefs)
