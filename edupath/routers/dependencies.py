# dependencies.py
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from edupath.database import get_db
from edupath.models.user import User
from edupath.schemas.user import TokenData
from edupath.services.llm_client import LLMClient
from edupath.utils.jwt_handler import user_id_from_token


# Tokens are issued by the platform auth service; tokenUrl only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def _resolve_user(db: Session, token: str) -> User:
    token_data = TokenData(user_id=user_id_from_token(token))
    user = db.query(User).filter(User.id == token_data.user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return _resolve_user(db, token)


def get_optional_user(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(optional_oauth2_scheme),
) -> Optional[User]:
    # Guests may call; a token that is present must still be valid.
    if not token:
        return None
    return _resolve_user(db, token)


def get_llm_client(request: Request) -> LLMClient:
    client = getattr(request.app.state, "llm_client", None)
    if client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="LLM client not configured")
    return client
