# recommendation_store.py
from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from edupath.models.course import Course
from edupath.models.recommendation import Recommendation, RecommendationCourse
from edupath.services.aggregator import LinkDraft


logger = logging.getLogger(__name__)


class RecommendationNotFoundError(LookupError):
    pass


class RecommendationPersistenceError(RuntimeError):
    pass


def create_recommendation(
    db: Session,
    *,
    user_id: int,
    goal: str,
    input_json: dict[str, Any],
    output_json: dict[str, Any],
    drafts: Sequence[LinkDraft],
) -> Recommendation:
    """Insert the recommendation and all of its links in one transaction."""
    try:
        rec = Recommendation(user_id=user_id, goal_text=goal, input_json=input_json, output_json=output_json)
        db.add(rec)
        db.flush()

        for draft in drafts:
            db.add(
                RecommendationCourse(
                    recommendation_id=rec.id,
                    course_id=draft.course_id,
                    stage=draft.stage,
                    rationale=draft.rationale,
                    matched_topics=list(draft.matched_topics),
                )
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("recommendation.persist failed user_id=%s links=%s", user_id, len(drafts))
        raise RecommendationPersistenceError("Failed to persist recommendation") from exc

    db.refresh(rec)
    return rec


def load_links(db: Session, recommendation_id: int) -> list[RecommendationCourse]:
    return (
        db.query(RecommendationCourse)
        .options(
            joinedload(RecommendationCourse.course).options(
                joinedload(Course.instructor),
                joinedload(Course.category),
                selectinload(Course.tags),
            )
        )
        .filter(RecommendationCourse.recommendation_id == recommendation_id)
        .order_by(RecommendationCourse.id.asc())
        .all()
    )


def get_owned_recommendation(db: Session, recommendation_id: int, user_id: int) -> Recommendation:
    rec = db.query(Recommendation).filter(Recommendation.id == recommendation_id).one_or_none()
    # Someone else's recommendation is reported exactly like a missing one.
    if rec is None or rec.user_id != user_id:
        raise RecommendationNotFoundError("Recommendation not found")
    return rec


def set_saved_flag(db: Session, rec: Recommendation, saved: bool) -> Recommendation:
    # Reassign a copy so SQLAlchemy sees the JSON column change.
    rec.input_json = {**(rec.input_json or {}), "saved": bool(saved)}
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise RecommendationPersistenceError("Failed to update recommendation") from exc
    db.refresh(rec)
    return rec
