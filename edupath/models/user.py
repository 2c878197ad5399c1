# user.py
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func
from edupath.database import Base


class User(Base):
    """Platform account, read-only here (owned by the user/auth service)."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
