# roadmap_normalizer.py
"""Defensive decoder for the model's roadmap response.

Every entry point here accepts arbitrary input and never raises: unknown shapes
are coerced to safe defaults or dropped. Feeding ``NormalizedOutput.to_dict()``
back through ``normalize_output`` returns an equal object.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping


FOUNDATION = "FOUNDATION"
INTERMEDIATE = "INTERMEDIATE"
ADVANCED = "ADVANCED"
ROADMAP_STAGES = (FOUNDATION, INTERMEDIATE, ADVANCED)
DEFAULT_STAGE = FOUNDATION


@dataclass(frozen=True)
class RoadmapTopic:
    name: str
    keywords: list[str]
    tip: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "keywords": list(self.keywords)}
        if self.tip:
            data["tip"] = self.tip
        return data


@dataclass(frozen=True)
class RoadmapStage:
    stage: str
    topics: list[RoadmapTopic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"stage": self.stage, "topics": [t.to_dict() for t in self.topics]}


@dataclass(frozen=True)
class Concept:
    name: str
    short: str = ""
    long: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "short": self.short, "long": self.long}


@dataclass(frozen=True)
class Career:
    name: str
    description: str = ""
    typical_roles: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "typicalRoles": list(self.typical_roles)}


@dataclass(frozen=True)
class NormalizedOutput:
    concepts: list[Concept] = field(default_factory=list)
    careers: list[Career] = field(default_factory=list)
    roadmap: list[RoadmapStage] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "concepts": [c.to_dict() for c in self.concepts],
            "careers": [c.to_dict() for c in self.careers],
            "roadmap": [s.to_dict() for s in self.roadmap],
            "notes": list(self.notes),
        }


def parse_model_output(text: Any) -> Any:
    """Parse the model's text as JSON. Returns None when it is empty or not JSON."""
    if not isinstance(text, str):
        return None
    raw = text.strip()
    # Strip markdown code fences if the model wraps the JSON
    if raw.startswith("```"):
        lines = raw.splitlines()
        raw = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    return str(value).strip()


def _first_text(entry: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = _text(entry.get(key))
        if value:
            return value
    return ""


def _unique(values: Iterable[str]) -> list[str]:
    result: list[str] = []
    seen: set[str] = set()
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def normalize_stage_name(value: Any) -> str:
    name = _text(value).upper()
    return name if name in ROADMAP_STAGES else DEFAULT_STAGE


def normalize_topic(entry: Any) -> list[RoadmapTopic]:
    """One raw topic entry -> zero or more canonical topics (strings may hold several)."""
    if isinstance(entry, str):
        parts = [p.strip() for p in entry.split(",")]
        return [RoadmapTopic(name=p, keywords=[p.lower()]) for p in parts if p]

    if isinstance(entry, Mapping):
        name = _first_text(entry, "name", "topic")
        if not name:
            return []
        raw_keywords = entry.get("keywords")
        if isinstance(raw_keywords, (list, tuple)):
            declared = [_text(k).lower() for k in raw_keywords]
        else:
            declared = []
        tip = _text(entry.get("tip")) or None
        return [RoadmapTopic(name=name, keywords=_unique([*declared, name.lower()]), tip=tip)]

    return []


def normalize_roadmap(raw: Any) -> list[RoadmapStage]:
    if not isinstance(raw, list):
        return []

    stages: list[RoadmapStage] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        raw_topics = entry.get("topics")
        if isinstance(raw_topics, str):
            raw_topics = [raw_topics]
        elif not isinstance(raw_topics, (list, tuple)):
            raw_topics = []

        topics: list[RoadmapTopic] = []
        for raw_topic in raw_topics:
            topics.extend(normalize_topic(raw_topic))
        stages.append(RoadmapStage(stage=normalize_stage_name(entry.get("stage")), topics=topics))
    return stages


def normalize_concepts(raw: Any) -> list[Concept]:
    if not isinstance(raw, list):
        return []
    concepts: list[Concept] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        name = _first_text(entry, "name", "title")
        if not name:
            continue
        concepts.append(
            Concept(
                name=name,
                short=_first_text(entry, "short", "summary"),
                long=_first_text(entry, "long", "explanation"),
            )
        )
    return concepts


def normalize_careers(raw: Any) -> list[Career]:
    if not isinstance(raw, list):
        return []
    careers: list[Career] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        name = _first_text(entry, "name")
        if not name:
            continue
        roles = entry.get("typicalRoles")
        typical_roles = [r for r in (_text(x) for x in roles) if r] if isinstance(roles, (list, tuple)) else []
        careers.append(
            Career(
                name=name,
                description=_first_text(entry, "description", "desc"),
                typical_roles=typical_roles,
            )
        )
    return careers


def normalize_notes(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    notes: list[str] = []
    for entry in raw:
        if isinstance(entry, (dict, list)):
            value = json.dumps(entry, ensure_ascii=False, sort_keys=True)
        else:
            value = _text(entry)
        if value:
            notes.append(value)
    return notes


def normalize_output(raw: Any) -> NormalizedOutput:
    if not isinstance(raw, Mapping):
        return NormalizedOutput()
    return NormalizedOutput(
        concepts=normalize_concepts(raw.get("concepts")),
        careers=normalize_careers(raw.get("careers")),
        roadmap=normalize_roadmap(raw.get("roadmap")),
        notes=normalize_notes(raw.get("notes")),
    )


def stage_topic_counts(roadmap: Iterable[RoadmapStage]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for stage in roadmap:
        counts[stage.stage] = counts.get(stage.stage, 0) + len(stage.topics)
    return counts
