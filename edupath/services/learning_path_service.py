# learning_path_service.py
from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from edupath.models.course import Course
from edupath.models.learning_path import LearningPath, LearningPathItem
from edupath.models.recommendation import RecommendationCourse
from edupath.services.recommendation_store import get_owned_recommendation, load_links
from edupath.services.stage_assembler import course_card


logger = logging.getLogger(__name__)

PATH_STAGE_ORDER: dict[str, int] = {
    "FOUNDATION": 0,
    "INTERMEDIATE": 1,
    "ADVANCED": 2,
    "SPECIALIZATION": 3,
}
_NAME_MAX_LENGTH = 255


class LearningPathPersistenceError(RuntimeError):
    pass


def _stage_of(link: RecommendationCourse) -> str:
    return (link.stage or "FOUNDATION").upper()


def _default_name(goal: str) -> str:
    return f"Learning path for: {goal}".strip()[:_NAME_MAX_LENGTH]


def select_path_links(
    links: Iterable[RecommendationCourse],
    selected_course_ids: Iterable[int] | None = None,
) -> list[RecommendationCourse]:
    """Non-placeholder links, optionally narrowed to a selection, in stage-priority then course-id order."""
    selection = set(selected_course_ids or [])
    kept = [
        link
        for link in links
        if not link.is_placeholder and (not selection or link.course_id in selection)
    ]
    kept.sort(key=lambda link: (PATH_STAGE_ORDER.get(_stage_of(link), 0), link.course_id or 0))
    return kept


def build_path_items(links: Iterable[RecommendationCourse]) -> list[LearningPathItem]:
    counters: dict[str, int] = {}
    items: list[LearningPathItem] = []
    for link in links:
        stage = _stage_of(link)
        counters[stage] = counters.get(stage, 0) + 1
        items.append(
            LearningPathItem(
                course_id=link.course_id,
                stage=stage,
                order_index=counters[stage],
                note=link.rationale or None,
            )
        )
    return items


def _load_path(db: Session, path_id: int) -> LearningPath | None:
    return (
        db.query(LearningPath)
        .options(
            selectinload(LearningPath.items)
            .joinedload(LearningPathItem.course)
            .options(joinedload(Course.category), joinedload(Course.instructor))
        )
        .filter(LearningPath.id == path_id)
        .one_or_none()
    )


def save_learning_path(
    db: Session,
    *,
    user_id: int,
    recommendation_id: int,
    name: str | None = None,
    selected_course_ids: Iterable[int] | None = None,
) -> LearningPath:
    rec = get_owned_recommendation(db, recommendation_id, user_id)
    links = select_path_links(load_links(db, recommendation_id), selected_course_ids)

    path = LearningPath(
        user_id=user_id,
        recommendation_id=rec.id,
        name=((name or "").strip()[:_NAME_MAX_LENGTH] or _default_name(rec.goal_text)),
        metadata_json={
            "goal_text": rec.goal_text,
            "input_json": rec.input_json,
            "created_from_recommendation": rec.id,
        },
    )
    path.items = build_path_items(links)

    try:
        db.add(path)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("learning_path.persist failed user_id=%s recommendation_id=%s", user_id, recommendation_id)
        raise LearningPathPersistenceError("Failed to persist learning path") from exc

    logger.info(
        "learning_path.saved user_id=%s path_id=%s recommendation_id=%s items=%s",
        user_id,
        path.id,
        recommendation_id,
        len(links),
    )
    path_id = path.id
    # Drop the identity-map copy so the reload picks up ordered, eagerly joined items.
    db.expire_all()
    return _load_path(db, path_id)


def list_learning_paths(db: Session, user_id: int) -> list[LearningPath]:
    return (
        db.query(LearningPath)
        .options(
            selectinload(LearningPath.items)
            .joinedload(LearningPathItem.course)
            .options(joinedload(Course.category), joinedload(Course.instructor))
        )
        .filter(LearningPath.user_id == user_id)
        .order_by(LearningPath.updated_at.desc(), LearningPath.id.desc())
        .all()
    )


def serialize_learning_path(path: LearningPath) -> dict[str, Any]:
    return {
        "id": path.id,
        "name": path.name,
        "user_id": path.user_id,
        "recommendation_id": path.recommendation_id,
        "metadata": path.metadata_json,
        "created_at": path.created_at,
        "updated_at": path.updated_at,
        "items": [
            {
                "id": item.id,
                "stage": item.stage,
                "order_index": item.order_index,
                "note": item.note,
                "course": course_card(item.course) if item.course is not None else None,
            }
            for item in path.items
        ],
    }
