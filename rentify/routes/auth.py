# Identity resolver: username/password accounts, HS256 bearer tokens and role guards.
# Routes resolve the caller here and pass plain ids/usernames to the core.
from __future__ import annotations

import os
import time
from typing import Callable, Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Header, status
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from ..errors import Conflict, Forbidden
from ..gateway import read_only, transaction
from ..rate_limit import rate_limit

router = APIRouter()

JWT_SECRET: str = os.getenv("RENTIFY_JWT_SECRET", "dev-secret-change-me")
JWT_ALG: str = "HS256"
JWT_TTL_SECONDS: int = 60 * 60 * 24 * 7
# bcrypt_sha256 lifts bcrypt's 72-byte input limit
pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(*, user: models.User) -> str:
    issued = int(time.time())
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "iat": issued,
        "exp": issued + JWT_TTL_SECONDS,
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG], options={"require": ["sub", "exp"]})
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc


def _token_response(user: models.User) -> schemas.TokenResponse:
    return schemas.TokenResponse(
        access_token=create_access_token(user=user),
        user=schemas.UserRead.model_validate(user),
    )


# ----------------
# Dependencies
# ----------------
def get_current_user(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> models.User:
    """Bearer token -> user row; 401 for a missing/invalid token or a deleted account."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Bearer token required")

    claims = decode_token(token)
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise _unauthorized("Invalid token payload") from exc

    with read_only(db) as gw:
        user = gw.get(models.User, user_id)
        if user is None:
            raise _unauthorized("User not found")
        return user


def require_role(*roles: str) -> Callable[..., models.User]:
    """Dependency factory admitting only callers whose role is in `roles`."""
    label = " or ".join(roles)

    def _guard(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in roles:
            raise Forbidden(f"Role {label} required")
        return user

    return _guard


require_owner = require_role("owner", "admin")
require_renter = require_role("renter")
require_admin = require_role("admin")


def is_admin(user: models.User) -> bool:
    return user.role == "admin"


def forbid(detail: str = "Not allowed") -> Forbidden:
    return Forbidden(detail)


# ----------------
# Routes
# ----------------
@router.post(
    "/auth/signup",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("signup"))],
)
def signup(payload: schemas.UserCreate, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    # The unique index on username settles concurrent signups as Conflict
    with transaction(db) as gw:
        if gw.user_by_username(payload.username) is not None:
            raise Conflict("Username already registered")
        user = gw.add(
            models.User(
                username=payload.username,
                password_hash=hash_password(payload.password),
                role=payload.role,
            )
        )
    return _token_response(user)


@router.post("/auth/login", response_model=schemas.TokenResponse, dependencies=[Depends(rate_limit("login"))])
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    with read_only(db) as gw:
        user = gw.user_by_username(payload.username)
        if user is None or not verify_password(payload.password, user.password_hash):
            raise _unauthorized("Invalid credentials")
        return _token_response(user)
