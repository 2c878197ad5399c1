# catalog_matcher.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from edupath.models.course import ApprovalStatus, Course, CourseStatus, Tag
from edupath.services.roadmap_normalizer import RoadmapStage


logger = logging.getLogger(__name__)

_LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class TopicMatch:
    stage: str
    topic: str
    courses: list[Course]


@dataclass(frozen=True)
class Placeholder:
    stage: str
    topic: str


@dataclass
class CatalogMatches:
    matches: list[TopicMatch] = field(default_factory=list)
    placeholders: list[Placeholder] = field(default_factory=list)


def _like_pattern(keyword: str) -> str:
    escaped = (
        keyword.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def find_courses_for_keywords(db: Session, keywords: Sequence[str]) -> list[Course]:
    """Published + approved courses whose title, description or any tag contains any keyword."""
    terms = [kw.strip().lower() for kw in keywords if kw and kw.strip()]
    if not terms:
        return []

    conditions = []
    for kw in terms:
        pattern = _like_pattern(kw)
        conditions.append(func.lower(Course.title).like(pattern, escape=_LIKE_ESCAPE))
        conditions.append(func.lower(Course.description).like(pattern, escape=_LIKE_ESCAPE))
        conditions.append(Course.tags.any(func.lower(Tag.name).like(pattern, escape=_LIKE_ESCAPE)))

    return (
        db.query(Course)
        .filter(Course.status == CourseStatus.PUBLISHED)
        .filter(Course.approval_status == ApprovalStatus.APPROVED)
        .filter(or_(*conditions))
        .order_by(Course.id.asc())
        .all()
    )


def match_roadmap(db: Session, roadmap: Sequence[RoadmapStage]) -> CatalogMatches:
    result = CatalogMatches()
    for stage in roadmap:
        for topic in stage.topics:
            courses = find_courses_for_keywords(db, topic.keywords)
            if courses:
                result.matches.append(TopicMatch(stage=stage.stage, topic=topic.name, courses=courses))
            else:
                result.placeholders.append(Placeholder(stage=stage.stage, topic=topic.name))

    logger.info(
        "catalog.match topics=%s matched=%s placeholders=%s",
        len(result.matches) + len(result.placeholders),
        len(result.matches),
        len(result.placeholders),
    )
    return result
