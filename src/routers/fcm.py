from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.db.database import get_db
from src.models.users import UserProfile
from src.services.fcm_push import deactivate_subscription, upsert_subscription

router = APIRouter(prefix="/fcm", tags=["푸시"])


class PushSubscriptionReq(BaseModel):
    token: str = Field(..., min_length=10, max_length=255)
    platform: Literal["web", "android", "ios"] = "web"
    device_id: Optional[str] = Field(default=None, max_length=128)


@router.post("/token", status_code=status.HTTP_201_CREATED)
def subscribe(
    body: PushSubscriptionReq,
    request: Request,
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """
    [프론트용 요약]

    POST /fcm/token
    - 리마인더 알림을 켜고 브라우저 권한이 허용된 직후, 그리고 PWA 가 뜰 때마다 호출
    - Body: {"token": "<FCM 토큰>", "platform": "web", "device_id": "<선택>"}
    - 같은 토큰이 다른 계정에 묶여 있었으면 지금 계정으로 옮김, 실패 횟수는 0 으로
    - 리마인더 시각/종류는 /notifications/preferences 에서 따로 저장
    """
    sub = upsert_subscription(
        db,
        current_user.id,
        body.token,
        body.platform,
        body.device_id,
        request.headers.get("user-agent"),
    )
    db.commit()
    return {"ok": True, "id": sub.id}


@router.delete("/token", status_code=status.HTTP_200_OK)
def unsubscribe(
    token: str = Query(..., min_length=10),
    db: Session = Depends(get_db),
    current_user: UserProfile = Depends(get_current_user),
):
    """로그아웃 / 알림 끄기 시 호출, 내 토큰이 아니면 updated=0"""
    updated = deactivate_subscription(db, current_user.id, token)
    db.commit()
    return {"updated": updated}
