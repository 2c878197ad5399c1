# recommendation.py
from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _require_text(value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError("must not be blank")
    return text


class RecommendationCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    goal: str = Field(max_length=1024)
    current_level: str = Field(alias="currentLevel")
    preferences: list[str] = Field(default_factory=list)
    # Unknown values fall back to medium/standard in the prompt builder.
    verbosity: Optional[str] = Field(default=None, max_length=16)
    guidance_mode: Optional[str] = Field(default=None, max_length=16, alias="guidanceMode")

    @field_validator("goal", "current_level")
    @classmethod
    def _validate_text(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("preferences", mode="before")
    @classmethod
    def _coerce_preferences(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [str(item) for item in v if item is not None]
        return v


class SaveRecommendationRequest(BaseModel):
    saved: bool = False


class SaveRecommendationResponse(BaseModel):
    id: int
    saved: bool


class FollowUpRequest(BaseModel):
    question: str = Field(max_length=4000)

    @field_validator("question")
    @classmethod
    def _validate_question(cls, v: str) -> str:
        return _require_text(v)


class FollowUpResponse(BaseModel):
    id: int
    question: str
    answer: str


class ClarifyRequest(BaseModel):
    question: str = Field(max_length=4000)
    # Any JSON value; usually {goal?, currentLevel?, preferences?, history?}
    context: Any = None

    @field_validator("question")
    @classmethod
    def _validate_question(cls, v: str) -> str:
        return _require_text(v)


class ClarifyResponse(BaseModel):
    question: str
    answer: str


class SavePathRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=255)
    selected_course_ids: list[int] = Field(default_factory=list, alias="selectedCourseIds")

    @field_validator("selected_course_ids", mode="before")
    @classmethod
    def _coerce_course_ids(cls, v: Any) -> list[int]:
        # Non-numeric entries are dropped rather than rejected.
        if not isinstance(v, list):
            return []
        ids: list[int] = []
        for item in v:
            if isinstance(item, bool):
                continue
            try:
                number = float(item)
            except (TypeError, ValueError):
                continue
            if math.isfinite(number) and number == int(number):
                ids.append(int(number))
        return ids


class Instructor(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class CategoryRef(BaseModel):
    id: int
    name: str


class TagRef(BaseModel):
    id: int
    name: str


class CourseCard(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    level: Optional[str] = None
    total_enrolled: int = 0
    price: float = 0.0
    original_price: float = 0.0
    duration_hours: float = 0.0
    rating: float = 0.0
    rating_count: int = 0
    status: Optional[str] = None
    approval_status: Optional[str] = None
    instructor: Optional[Instructor] = None
    category: Optional[CategoryRef] = None
    tags: list[TagRef] = Field(default_factory=list)


class StageCourse(CourseCard):
    model_config = ConfigDict(populate_by_name=True)

    matched_topics: list[str] = Field(default_factory=list, alias="matchedTopics")
    match_count: int = Field(default=0, alias="matchCount")
    match_score: int = Field(default=0, ge=0, le=100, alias="matchScore")


class LegacyCourse(BaseModel):
    id: int
    stage: str
    rationale: str


class TopicOut(BaseModel):
    name: str
    keywords: list[str] = Field(default_factory=list)
    tip: Optional[str] = None


class RoadmapStageOut(BaseModel):
    stage: str
    topics: list[TopicOut] = Field(default_factory=list)


class TopicName(BaseModel):
    name: str


class StageSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stage: str
    topics: list[TopicName] = Field(default_factory=list)
    topic_count: int = Field(default=0, alias="topicCount")


class ConceptOut(BaseModel):
    name: str
    short: str = ""
    long: str = ""


class CareerOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    typical_roles: list[str] = Field(default_factory=list, alias="typicalRoles")


class UserRef(BaseModel):
    id: int


class RecommendationResponse(BaseModel):
    id: int
    goal_text: str
    input_json: dict[str, Any]
    output_summary: list[StageSummary] = Field(default_factory=list)
    concepts: list[ConceptOut] = Field(default_factory=list)
    careers: list[CareerOut] = Field(default_factory=list)
    roadmap: list[RoadmapStageOut] = Field(default_factory=list)
    user: UserRef
    courses_by_stage: dict[str, list[StageCourse]] = Field(default_factory=dict)
    # Flat list kept for older clients.
    courses: list[LegacyCourse] = Field(default_factory=list)
