# recommendation_service.py
from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from edupath.config import settings
from edupath.services.aggregator import aggregate_matches
from edupath.services.catalog_matcher import match_roadmap
from edupath.services.llm_client import LLMClient, LLMError
from edupath.services.prompt_builder import build_clarify_messages, build_follow_up_messages, build_roadmap_prompt
from edupath.services.recommendation_store import (
    create_recommendation,
    get_owned_recommendation,
    load_links,
    set_saved_flag,
)
from edupath.services.roadmap_normalizer import (
    NormalizedOutput,
    normalize_output,
    parse_model_output,
    stage_topic_counts,
)
from edupath.services.stage_assembler import assemble_stages, build_output_summary


logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\S+")


async def _request_roadmap(llm: LLMClient, messages: list[dict[str, str]], user_id: int) -> str:
    try:
        return await llm.complete(messages, json_mode=True)
    except LLMError as exc:
        # Generation degrades to an empty roadmap instead of failing the request.
        logger.warning("recommendation.llm_failed user_id=%s error=%s", user_id, exc)
        return ""


def _match_and_persist(
    db: Session,
    *,
    user_id: int,
    goal: str,
    input_json: dict[str, Any],
    normalized: NormalizedOutput,
) -> dict[str, Any]:
    """Blocking DB phase of generation: match, aggregate, persist, reload, assemble."""
    matches = match_roadmap(db, normalized.roadmap)
    drafts = aggregate_matches(matches)

    rec = create_recommendation(
        db,
        user_id=user_id,
        goal=goal,
        input_json=input_json,
        output_json=normalized.to_dict(),
        drafts=drafts,
    )

    links = load_links(db, rec.id)
    assembled = assemble_stages(links, stage_topic_counts(normalized.roadmap))

    logger.info(
        "recommendation.generate user_id=%s recommendation_id=%s stages=%s links=%s visible=%s",
        user_id,
        rec.id,
        len(normalized.roadmap),
        len(links),
        len(assembled.courses),
    )

    return {
        "id": rec.id,
        "goal_text": rec.goal_text,
        "input_json": rec.input_json,
        "output_summary": build_output_summary(normalized.roadmap),
        "concepts": [c.to_dict() for c in normalized.concepts],
        "careers": [c.to_dict() for c in normalized.careers],
        "roadmap": [s.to_dict() for s in normalized.roadmap],
        "user": {"id": rec.user_id},
        "courses_by_stage": assembled.courses_by_stage,
        "courses": assembled.courses,
    }


async def generate_recommendation(
    db: Session,
    llm: LLMClient,
    *,
    user_id: int,
    goal: str,
    current_level: str,
    preferences: Iterable[Any] | None = None,
    verbosity: str | None = None,
    guidance_mode: str | None = None,
) -> dict[str, Any]:
    prompt = build_roadmap_prompt(goal, current_level, preferences, verbosity, guidance_mode)

    content = await _request_roadmap(llm, prompt.messages, user_id)
    normalized = normalize_output(parse_model_output(content))
    if content and not normalized.roadmap:
        logger.warning("recommendation.empty_roadmap user_id=%s response_chars=%s", user_id, len(content))

    input_json = {
        "currentLevel": current_level,
        "preferences": prompt.preferences,
        "verbosity": prompt.verbosity,
        "guidanceMode": prompt.guidance_mode,
    }
    # Catalog queries and the insert are synchronous; keep them off the event loop.
    return await run_in_threadpool(
        _match_and_persist,
        db,
        user_id=user_id,
        goal=goal,
        input_json=input_json,
        normalized=normalized,
    )


def save_recommendation(db: Session, *, user_id: int, recommendation_id: int, saved: bool) -> dict[str, Any]:
    rec = get_owned_recommendation(db, recommendation_id, user_id)
    set_saved_flag(db, rec, saved)
    return {"id": rec.id, "saved": bool(saved)}


def _follow_up_context(db: Session, user_id: int, recommendation_id: int, question: str) -> tuple[int, list[dict[str, str]]]:
    rec = get_owned_recommendation(db, recommendation_id, user_id)
    return rec.id, build_follow_up_messages(rec.goal_text, rec.input_json, rec.output_json, question)


async def follow_up(
    db: Session,
    llm: LLMClient,
    *,
    user_id: int,
    recommendation_id: int,
    question: str,
) -> dict[str, Any]:
    rec_id, messages = await run_in_threadpool(_follow_up_context, db, user_id, recommendation_id, question)
    answer = await llm.complete(messages)
    return {"id": rec_id, "question": question, "answer": answer}


def clip_words(text: str, max_words: int) -> str:
    """Cut after the max_words-th word, keeping the original line breaks and bullets."""
    words = list(_WORD_RE.finditer(text))
    if len(words) <= max_words:
        return text
    end = words[max_words - 1].end()
    return text[:end].rstrip(",;:") + "…"


async def clarify(
    llm: LLMClient,
    *,
    question: str,
    context: Any = None,
    user_id: int | None = None,
) -> dict[str, Any]:
    safe_question = (question or "").strip()
    messages = build_clarify_messages(
        safe_question,
        context or {},
        user_id=user_id,
        language=settings.clarify_language,
        max_words=settings.clarify_max_words,
    )
    answer = await llm.complete(messages)
    return {"question": safe_question, "answer": clip_words(answer, settings.clarify_max_words)}
