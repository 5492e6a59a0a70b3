# Supabase JWKS (RS256 서명 프로젝트용) 공개키 캐시
import json
import time

import requests
from jwt.algorithms import RSAAlgorithm

from src.config.settings import settings

JWKS_TTL_SECONDS = 60 * 60

_cache = {"by_kid": None, "fetched_at": 0.0}


def get_jwks():
    """kid → RSA 공개키"""
    now = time.time()
    if _cache["by_kid"] is not None and now - _cache["fetched_at"] < JWKS_TTL_SECONDS:
        return _cache["by_kid"]

    res = requests.get(settings.jwks_url, timeout=10)
    res.raise_for_status()

    # kid 없는 키는 토큰 헤더로 고를 수 없어서 버림
    by_kid = {}
    for entry in res.json().get("keys", []):
        if "kid" in entry:
            by_kid[entry["kid"]] = RSAAlgorithm.from_jwk(json.dumps(entry))

    _cache["by_kid"] = by_kid
    _cache["fetched_at"] = now
    return by_kid


def clear_cache():
    _cache["by_kid"] = None
    _cache["fetched_at"] = 0.0
