# prompt_builder.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable

from edupath.services.llm_client import ChatMessage


VERBOSITY_LEVELS = ("short", "medium", "deep")
GUIDANCE_MODES = ("novice", "guided", "standard")
DEFAULT_VERBOSITY = "medium"
DEFAULT_GUIDANCE_MODE = "standard"

ROADMAP_JSON_EXAMPLE = """{
  "concepts": [
    { "name": "Programming Basics", "short": "What programming is.", "long": "Explain what programming is used for, algorithms, OOP basics, etc." }
  ],
  "careers": [
    { "name": "Web Development", "description": "Build websites and web apps.", "typicalRoles": ["Frontend", "Backend", "Fullstack"] }
  ],
  "roadmap": [
    { "stage": "FOUNDATION", "topics": [ { "name": "HTML", "keywords": ["html", "html5"], "tip": "Learn structure." } ] }
  ],
  "notes": []
}"""

FOLLOW_UP_SYSTEM_PROMPT = "You are a helpful mentor for programming learners."

CLARIFY_SYSTEM_PROMPT = (
    "You are a friendly, precise programming mentor. Answer in {language}. "
    "Provide structured, helpful, and actionable answers for beginners. "
    "Use short paragraphs and bullet points when appropriate. "
    "Avoid hallucinating code unless necessary."
)


@dataclass(frozen=True)
class RoadmapPrompt:
    goal: str
    current_level: str
    preferences: list[str]
    verbosity: str
    guidance_mode: str
    explain_level: str
    messages: list[ChatMessage] = field(default_factory=list)


def split_preferences(preferences: Iterable[Any] | None) -> list[str]:
    """Flatten comma-joined preference entries ("HTML,CSS") into trimmed, non-empty values."""
    result: list[str] = []
    for entry in preferences or []:
        if entry is None:
            continue
        for part in str(entry).split(","):
            value = part.strip()
            if value:
                result.append(value)
    return result


def resolve_verbosity(value: str | None) -> str:
    v = (value or "").strip().lower()
    return v if v in VERBOSITY_LEVELS else DEFAULT_VERBOSITY


def resolve_guidance_mode(value: str | None) -> str:
    v = (value or "").strip().lower()
    return v if v in GUIDANCE_MODES else DEFAULT_GUIDANCE_MODE


def explain_level(verbosity: str, guidance_mode: str) -> str:
    if verbosity == "deep" or guidance_mode == "novice":
        return "detailed"
    if verbosity == "short":
        return "brief"
    return "concise"


def build_roadmap_prompt(
    goal: str,
    current_level: str,
    preferences: Iterable[Any] | None,
    verbosity: str | None = None,
    guidance_mode: str | None = None,
) -> RoadmapPrompt:
    """
    Builds the single user message asking the model for a staged roadmap.
    The model only proposes topics and keywords; catalog matching happens on our side.
    """
    prefs = split_preferences(preferences)
    detail = resolve_verbosity(verbosity)
    mode = resolve_guidance_mode(guidance_mode)
    level = explain_level(detail, mode)

    prompt = f"""You are an educational mentor/recommender.
User info:
- currentLevel: {current_level}
- goal: {goal}
- preferences: {', '.join(prefs)}
- guidanceMode: {mode} (novice|guided|standard)
- verbosity: {detail} (short|medium|deep)

Task: Return JSON with four sections for a beginner-friendly journey:
1) concepts: core programming concepts for absolute beginners, each with short and long explanations (why it matters).
2) careers: main software career paths (Web, Mobile, App, Game, Data, DevOps, etc) with a short description and typical roles.
3) roadmap: grouped by stages FOUNDATION, INTERMEDIATE, ADVANCED. Each stage contains topics. Each topic has a name and keywords (for matching to course data). Optionally add a short tip/explanation.
4) notes: optional tips (may be empty).

Return strict JSON only in the following format (no extra commentary):
{ROADMAP_JSON_EXAMPLE}

If you cannot provide keywords, it's OK to return topics as strings. Use {level} explanations, and if mode is novice, prefer clearer and more thorough explanations."""

    return RoadmapPrompt(
        goal=goal,
        current_level=current_level,
        preferences=prefs,
        verbosity=detail,
        guidance_mode=mode,
        explain_level=level,
        messages=[{"role": "user", "content": prompt}],
    )


def build_follow_up_messages(
    goal: str,
    input_json: Any,
    output_json: Any,
    question: str,
) -> list[ChatMessage]:
    context = {"goal": goal, "input": input_json, "output": output_json}
    return [
        {"role": "system", "content": FOLLOW_UP_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"Context (JSON): {json.dumps(context, ensure_ascii=False, default=str)}\n\n"
                f"User follow-up question: {question}\n\n"
                "Answer briefly and suggest specific next steps."
            ),
        },
    ]


def build_clarify_messages(
    question: str,
    context: Any,
    *,
    user_id: int | None = None,
    language: str = "English",
    max_words: int = 250,
) -> list[ChatMessage]:
    user_ref = str(user_id) if user_id is not None else "guest"
    return [
        {"role": "system", "content": CLARIFY_SYSTEM_PROMPT.format(language=language)},
        {
            "role": "user",
            "content": (
                f"UserId: {user_ref}\n"
                f"Context (optional JSON): {json.dumps(context or {}, ensure_ascii=False, default=str)}\n"
                f"Question: {question}\n\n"
                "Requirements:\n"
                "- If the question is a greeting or too vague, ask 2-3 clarifying questions "
                "AND provide 3-5 concrete next steps for beginners.\n"
                "- Else, answer directly with concise steps, pitfalls, and a tiny practice idea.\n"
                f"- Keep it under ~{max_words} words."
            ),
        },
    ]
