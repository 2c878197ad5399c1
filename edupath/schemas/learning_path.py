# learning_path.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from edupath.schemas.recommendation import CourseCard


class LearningPathItemOut(BaseModel):
    id: int
    stage: str
    order_index: int
    note: Optional[str] = None
    course: Optional[CourseCard] = None


class LearningPathOut(BaseModel):
    id: int
    name: str
    user_id: int
    recommendation_id: Optional[int] = None
    # {goal_text, input_json, created_from_recommendation}
    metadata: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: list[LearningPathItemOut] = Field(default_factory=list)
