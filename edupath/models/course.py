# course.py
from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, Numeric, String, Table, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from edupath.database import Base


class CourseStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class CourseLevel(str, enum.Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


course_tags = Table(
    "course_tags",
    Base.metadata,
    Column("course_id", Integer, ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class CourseCategory(Base):
    __tablename__ = "course_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)


class Course(Base):
    """Catalog entry. The catalog is owned by the course service; we only match against it."""

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(String(512), nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    original_price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_hours = Column(Integer, nullable=False, default=0)
    total_enrolled = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0)
    rating_count = Column(Integer, nullable=False, default=0)

    level = Column(Enum(CourseLevel, native_enum=False, length=16), nullable=False, default=CourseLevel.BEGINNER)
    status = Column(
        Enum(CourseStatus, native_enum=False, length=16),
        nullable=False,
        default=CourseStatus.DRAFT,
        index=True,
    )
    approval_status = Column(
        Enum(ApprovalStatus, native_enum=False, length=16),
        nullable=False,
        default=ApprovalStatus.PENDING,
        index=True,
    )

    instructor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("course_categories.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    instructor = relationship("User")
    category = relationship("CourseCategory")
    tags = relationship("Tag", secondary=course_tags, order_by="Tag.id")
