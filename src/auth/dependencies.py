# src/auth/dependencies.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.auth.token_verifier import verify_access_token
from src.db.database import get_db
from src.models.challenge import Challenge
from src.models.users import UserProfile
from src.services.challenges import get_active_challenge
from src.services.profiles import get_or_create_profile


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> UserProfile:

    # Authorization: Bearer <token> 우선, 없으면 헤더 직접 확인
    if bearer and getattr(bearer, "scheme", "").lower() == "bearer":
        access_token = bearer.credentials
    else:
        auth = request.headers.get("Authorization")
        if not auth or not auth.startswith("Bearer "):
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing bearer token")
        access_token = auth.replace("Bearer ", "", 1).strip()

    payload = verify_access_token(access_token)
    if payload is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid access token")

    # 첫 요청이면 프로필 자동 생성 (온보딩은 /onboarding 에서)
    metadata = payload.get("user_metadata") or {}
    return get_or_create_profile(db, payload["sub"], metadata.get("display_name"))


def get_active_challenge_or_404(
    user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Challenge:
    challenge = get_active_challenge(db, user.id)
    if challenge is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "No active challenge. Complete onboarding first.")
    return challenge
