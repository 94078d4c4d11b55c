from __future__ import annotations

import logging
import os
import time
from functools import lru_cache
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Header, status
from passlib.context import CryptContext

from .. import schemas
from ..rate_limit import rate_limit

router = APIRouter()
logger = logging.getLogger("rentabike.auth")

# Security primitives: a single shop admin identified by a shared password
JWT_SECRET: str = os.getenv("RENTABIKE_JWT_SECRET", "dev-secret-change-me")
JWT_ALG: str = "HS256"
JWT_TTL_SECONDS: int = 60 * 60 * 24  # 24 hours
# Use bcrypt_sha256 to avoid bcrypt's 72-byte password limit and handle unicode safely.
pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")


# ----------------
# Helpers
# ----------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


@lru_cache(maxsize=1)
def admin_password_hash() -> Optional[str]:
    """
    ADMIN_PASSWORD_HASH wins when set; a plain ADMIN_PASSWORD is hashed once per process.
    Returns None when neither is configured.
    """
    configured = os.getenv("ADMIN_PASSWORD_HASH", "").strip()
    if configured:
        return configured
    plain = os.getenv("ADMIN_PASSWORD", "")
    return hash_password(plain) if plain else None


def verify_admin_password(password: str) -> bool:
    password_hash = admin_password_hash()
    if password_hash is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Admin password not configured")
    return pwd_context.verify(password, password_hash)


def create_access_token() -> str:
    now = int(time.time())
    payload = {
        "sub": "admin",
        "admin": True,
        "iat": now,
        "exp": now + JWT_TTL_SECONDS,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


# ----------------
# Dependencies
# ----------------
def bearer_token_from_auth_header(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization header missing")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Authorization header")
    return parts[1]


def require_admin(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> dict:
    """Authorize back-office requests; returns the decoded token claims."""
    token = bearer_token_from_auth_header(authorization)
    payload = decode_token(token)
    if payload.get("admin") is not True:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return payload


# ----------------
# Routes
# ----------------
@router.post(
    "/auth/admin/login",
    response_model=schemas.TokenResponse,
    dependencies=[Depends(rate_limit("login"))],
)
def login(payload: schemas.AdminLoginRequest) -> schemas.TokenResponse:
    if not verify_admin_password(payload.password):
        logger.warning("Invalid admin password attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")
    return schemas.TokenResponse(access_token=create_access_token(), expires_in=JWT_TTL_SECONDS)


@router.post("/auth/admin/verify", response_model=schemas.TokenVerifyResponse)
def verify(payload: schemas.TokenVerifyRequest) -> schemas.TokenVerifyResponse:
    claims = decode_token(payload.token)
    return schemas.TokenVerifyResponse(valid=True, admin=bool(claims.get("admin")))
