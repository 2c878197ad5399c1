from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from edupath.database import engine, mask_db_url
from edupath.config import build_sqlalchemy_db_url, settings


router = APIRouter(prefix="/health", tags=["health"])


class HealthStatus(BaseModel):
    status: str
    llm: str
    timestamp: datetime


class DBHealthStatus(BaseModel):
    orm: str
    orm_db_url: str
    timestamp: datetime


@router.get("/", response_model=HealthStatus, summary="API heartbeat")
def health_check(request: Request) -> HealthStatus:
    llm_status = "ok" if getattr(request.app.state, "llm_client", None) is not None else "disabled"
    return HealthStatus(status="ok", llm=llm_status, timestamp=datetime.now(timezone.utc))


@router.get("/db", response_model=DBHealthStatus, summary="DB connectivity check")
def db_health_check() -> DBHealthStatus:
    orm_status = "ok"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        orm_status = "error"

    return DBHealthStatus(
        orm=orm_status,
        orm_db_url=mask_db_url(build_sqlalchemy_db_url(settings)),
        timestamp=datetime.now(timezone.utc),
    )
