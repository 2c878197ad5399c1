from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from edupath.database import Base


class LearningPath(Base):
    __tablename__ = "learning_paths"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recommendation_id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("ai_recommendations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name = Column(String(255), nullable=False)

    # `metadata` is reserved on declarative classes, so the attribute is renamed.
    # Snapshot: {goal_text, input_json, created_from_recommendation}
    metadata_json = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        index=True,
    )

    items = relationship(
        "LearningPathItem",
        back_populates="path",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LearningPathItem.id",
    )
    recommendation = relationship("Recommendation")


class LearningPathItem(Base):
    __tablename__ = "learning_path_items"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        index=True,
    )
    path_id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("learning_paths.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True, index=True)
    stage = Column(String(32), nullable=False)

    # 1-based, scoped per stage within a path.
    order_index = Column(Integer, nullable=False, default=0)
    note = Column(Text, nullable=True)

    path = relationship("LearningPath", back_populates="items")
    course = relationship("Course")
