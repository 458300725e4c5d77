"""Bearer token helpers.

Tokens only identify the caller (``userId``/``sub``). Roles and lodges are
looked up again on every request, so a stale or forged role claim has no
effect.
"""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

TOKEN_TTL = timedelta(days=7)
ALGORITHM = "HS256"


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def encode_jwt(
    payload: dict, secret: Optional[str] = None, ttl: Optional[timedelta] = None
) -> Optional[str]:
    secret = secret or os.getenv("JWT_SECRET")
    if not secret:
        return None
    claims = dict(payload)
    claims.setdefault("exp", datetime.now(timezone.utc) + (ttl or TOKEN_TTL))
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_jwt(token: str, secret: Optional[str] = None) -> Optional[dict]:
    secret = secret or os.getenv("JWT_SECRET")
    if not secret or not token:
        return None
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None


def subject_of(claims: Optional[dict]) -> Optional[str]:
    if not claims:
        return None
    subject = claims.get("userId") or claims.get("sub")
    return str(subject) if subject else None


def issue_token(member_id: str, secret: Optional[str] = None) -> Optional[str]:
    return encode_jwt({"userId": member_id, "sub": member_id}, secret=secret)
