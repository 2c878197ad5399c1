# stage_assembler.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from edupath.models.course import Course
from edupath.models.recommendation import RecommendationCourse
from edupath.services.aggregator import MAX_COURSES_PER_STAGE, matched_topics_rationale
from edupath.services.roadmap_normalizer import DEFAULT_STAGE, ROADMAP_STAGES, RoadmapStage


_RATIONALE_PREFIX_RE = re.compile(r"^\s*matched topics:\s*", re.IGNORECASE)


@dataclass
class AssembledResult:
    courses_by_stage: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    courses: list[dict[str, Any]] = field(default_factory=list)


def parse_rationale_topics(rationale: str | None) -> list[str]:
    """Recover topic names from a "Matched topics: a, b" sentence (rows written before matched_topics existed)."""
    body = _RATIONALE_PREFIX_RE.sub("", rationale or "", count=1)
    return [part.strip() for part in body.split(",") if part.strip()]


def link_topics(link: RecommendationCourse) -> list[str]:
    stored = link.matched_topics
    if isinstance(stored, list):
        return [str(t) for t in stored if t]
    return parse_rationale_topics(link.rationale)


def compute_match_score(match_count: int, stage_total_topics: int) -> int:
    ratio = match_count / max(1, stage_total_topics)
    # Half-up rounding so 12.5 -> 13.
    return max(0, min(100, math.floor(ratio * 100 + 0.5)))


def _stage_sort_key(stage: str) -> tuple[int, str]:
    if stage in ROADMAP_STAGES:
        return (ROADMAP_STAGES.index(stage), "")
    return (len(ROADMAP_STAGES), stage)


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _enum_value(value: Any) -> str | None:
    if value is None:
        return None
    return getattr(value, "value", value)


def course_card(course: Course) -> dict[str, Any]:
    instructor = course.instructor
    category = course.category
    return {
        "id": course.id,
        "title": course.title,
        "description": course.description or None,
        "thumbnail_url": course.thumbnail_url or None,
        "level": _enum_value(course.level),
        "total_enrolled": int(course.total_enrolled or 0),
        "price": _as_float(course.price),
        "original_price": _as_float(course.original_price),
        "duration_hours": _as_float(course.duration_hours),
        "rating": _as_float(course.rating),
        "rating_count": int(course.rating_count or 0),
        "status": _enum_value(course.status),
        "approval_status": _enum_value(course.approval_status),
        "instructor": (
            {
                "id": instructor.id,
                "first_name": instructor.first_name,
                "last_name": instructor.last_name,
                "email": instructor.email,
            }
            if instructor is not None
            else None
        ),
        "category": {"id": category.id, "name": category.name} if category is not None else None,
        "tags": [{"id": t.id, "name": t.name} for t in (course.tags or []) if t.id and t.name],
    }


def assemble_stages(
    links: Sequence[RecommendationCourse],
    stage_topic_counts: Mapping[str, int],
    limit: int = MAX_COURSES_PER_STAGE,
) -> AssembledResult:
    ordered = sorted(
        links,
        key=lambda rc: (_stage_sort_key((rc.stage or DEFAULT_STAGE).upper()), rc.course_id or 0),
    )

    result = AssembledResult()
    assigned_course_ids: set[int] = set()

    for link in ordered:
        stage = (link.stage or DEFAULT_STAGE).upper()
        visible = result.courses_by_stage.setdefault(stage, [])

        # Placeholders stay in storage but are never shown.
        if link.is_placeholder or link.course is None:
            continue
        course_id = link.course.id
        if course_id in assigned_course_ids:
            continue
        if len(visible) >= limit:
            continue
        assigned_course_ids.add(course_id)

        topics = link_topics(link)
        card = course_card(link.course)
        card.update(
            {
                "matchedTopics": topics,
                "matchCount": len(topics),
                "matchScore": compute_match_score(len(topics), stage_topic_counts.get(stage, 0)),
            }
        )
        visible.append(card)

    for stage in sorted(result.courses_by_stage, key=_stage_sort_key):
        for item in result.courses_by_stage[stage]:
            result.courses.append(
                {
                    "id": item["id"],
                    "stage": stage,
                    "rationale": matched_topics_rationale(item["matchedTopics"]),
                }
            )
    return result


def build_output_summary(roadmap: Iterable[RoadmapStage]) -> list[dict[str, Any]]:
    return [
        {
            "stage": stage.stage,
            "topics": [{"name": t.name} for t in stage.topics],
            "topicCount": len(stage.topics),
        }
        for stage in roadmap
    ]
