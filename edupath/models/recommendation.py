from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from edupath.database import Base


class Recommendation(Base):
    __tablename__ = "ai_recommendations"

    # MySQL: BIGINT AUTO_INCREMENT
    # SQLite tests: uses INTEGER for reliable autoincrement.
    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_text = Column(String(1024), nullable=False)

    # {currentLevel, preferences, verbosity, guidanceMode} (+ "saved" once the user toggles it)
    input_json = Column(JSON, nullable=False)

    # Normalized model output: {concepts, careers, roadmap, notes}
    output_json = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User")
    courses = relationship(
        "RecommendationCourse",
        back_populates="recommendation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RecommendationCourse.id",
    )


class RecommendationCourse(Base):
    """One matched course (or a placeholder when course_id is NULL) for a recommendation stage."""

    __tablename__ = "ai_recommendation_courses"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        index=True,
    )
    recommendation_id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("ai_recommendations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True, index=True)
    stage = Column(String(32), nullable=False)
    rationale = Column(Text, nullable=True)

    # Stored as list[str]; the rationale sentence is derived from it.
    matched_topics = Column(JSON, nullable=True)

    recommendation = relationship("Recommendation", back_populates="courses")
    course = relationship("Course")

    @property
    def is_placeholder(self) -> bool:
        return self.course_id is None
