# jwt_handler.py
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import HTTPException, status
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from edupath.config import settings


DEFAULT_TOKEN_TTL = timedelta(hours=1)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a token shaped like the platform auth service's (used by scripts and tests)."""
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_TTL)
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise _unauthorized("Token expired") from exc
    except JWTError as exc:
        raise _unauthorized("Invalid token") from exc


def user_id_from_token(token: str) -> int:
    # The auth service puts the numeric user id in `sub`, serialized as a string.
    subject = decode_access_token(token).get("sub")
    if subject is None:
        raise _unauthorized("Invalid token payload")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise _unauthorized("Invalid token subject") from exc
