# token_verifier.py
"""
Supabase 발급 access token 검증
- 기본: HS256 (프로젝트 JWT secret)
- JWKS_URL 이 설정돼 있고 토큰 헤더가 RS256 이면 JWKS 공개키로 검증
"""
import logging
from typing import Any, Dict, Optional

import jwt
import requests

from src.auth.jwks import get_jwks
from src.config.settings import settings

logger = logging.getLogger(__name__)


def _decode_kwargs() -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"audience": settings.jwt_audience}
    if settings.jwt_issuer:
        kwargs["issuer"] = settings.jwt_issuer
    return kwargs


def public_key_for(token: str):
    kid = jwt.get_unverified_header(token).get("kid")
    if not kid:
        return None
    return get_jwks().get(kid)


def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    검증 성공 → payload, 실패 → None
    - 서명 / exp / aud (/ iss 설정 시)
    - sub 없는 토큰은 거부
    """
    try:
        header = jwt.get_unverified_header(token)
        if header.get("alg") == "RS256" and settings.jwks_url:
            key = public_key_for(token)
            if key is None:
                return None
            payload = jwt.decode(token, key, algorithms=["RS256"], **_decode_kwargs())
        else:
            payload = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"], **_decode_kwargs())
    except jwt.PyJWTError as e:
        logger.info("[auth] token rejected: %s", e)
        return None
    except requests.RequestException as e:
        logger.warning("[auth] JWKS fetch failed: %s", e)
        return None

    if not payload.get("sub"):
        return None
    return payload
