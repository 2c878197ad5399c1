# aggregator.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from edupath.services.catalog_matcher import CatalogMatches


MAX_COURSES_PER_STAGE = 3
MATCHED_TOPICS_PREFIX = "Matched topics: "


@dataclass
class _Aggregate:
    course_id: int
    stage: str
    # dict used as an ordered set of topic names
    topics: dict[str, None] = field(default_factory=dict)

    @property
    def match_count(self) -> int:
        return len(self.topics)


@dataclass(frozen=True)
class LinkDraft:
    """A recommendation link ready to be persisted. course_id None marks a placeholder."""

    stage: str
    course_id: int | None
    matched_topics: list[str]
    rationale: str


def matched_topics_rationale(topics: Iterable[str]) -> str:
    return f"{MATCHED_TOPICS_PREFIX}{', '.join(topics)}"


def placeholder_rationale(topic: str) -> str:
    return f"No matching course found for {topic}"


def aggregate_matches(matches: CatalogMatches, limit: int = MAX_COURSES_PER_STAGE) -> list[LinkDraft]:
    aggregates: dict[tuple[int, str], _Aggregate] = {}
    for match in matches.matches:
        for course in match.courses:
            key = (course.id, match.stage)
            entry = aggregates.get(key)
            if entry is None:
                entry = _Aggregate(course_id=course.id, stage=match.stage)
                aggregates[key] = entry
            entry.topics[match.topic] = None

    by_stage: dict[str, list[_Aggregate]] = {}
    for entry in aggregates.values():
        by_stage.setdefault(entry.stage, []).append(entry)

    drafts: list[LinkDraft] = []
    for stage, entries in by_stage.items():
        # sorted() is stable: equal counts keep insertion order.
        ranked = sorted(entries, key=lambda e: e.match_count, reverse=True)[:limit]
        for entry in ranked:
            topics = list(entry.topics)
            drafts.append(
                LinkDraft(
                    stage=stage,
                    course_id=entry.course_id,
                    matched_topics=topics,
                    rationale=matched_topics_rationale(topics),
                )
            )

    for placeholder in matches.placeholders:
        drafts.append(
            LinkDraft(
                stage=placeholder.stage,
                course_id=None,
                matched_topics=[],
                rationale=placeholder_rationale(placeholder.topic),
            )
        )
    return drafts
