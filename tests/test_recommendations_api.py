from __future__ import annotations

import json

from fastapi.testclient import TestClient

from edupath.database import SessionLocal
from edupath.models.recommendation import Recommendation, RecommendationCourse
from edupath.services import recommendation_service
from edupath.services.aggregator import LinkDraft
from edupath.services.llm_client import LLMError


def _roadmap_reply(roadmap: list[dict], **extra) -> str:
    return json.dumps({"concepts": [], "careers": [], "roadmap": roadmap, "notes": [], **extra})


def _generate(client, headers, goal: str = "Become a web developer", **overrides):
    payload = {"goal": goal, "currentLevel": "beginner", "preferences": ["HTML,CSS"], **overrides}
    return client.post("/recommendations", json=payload, headers=headers)


def test_generate_attaches_matching_course_to_its_stage(client, fake_llm, make_user, make_course, auth_headers) -> None:
    user_id = make_user()
    course_id = make_course("HTML5 Basics", tags=["html"])
    fake_llm.response = _roadmap_reply(
        [{"stage": "FOUNDATION", "topics": [{"name": "HTML", "keywords": ["html", "html5"]}]}],
        concepts=[{"name": "Programming Basics", "short": "What it is.", "long": "Longer."}],
        careers=[{"name": "Web Development", "description": "Sites", "typicalRoles": ["Frontend"]}],
    )

    resp = _generate(client, auth_headers(user_id))
    assert resp.status_code == 200
    body = resp.json()

    assert body["id"] > 0
    assert body["goal_text"] == "Become a web developer"
    assert body["user"] == {"id": user_id}
    assert body["input_json"] == {
        "currentLevel": "beginner",
        "preferences": ["HTML", "CSS"],
        "verbosity": "medium",
        "guidanceMode": "standard",
    }
    assert body["output_summary"] == [{"stage": "FOUNDATION", "topics": [{"name": "HTML"}], "topicCount": 1}]
    assert body["careers"][0]["typicalRoles"] == ["Frontend"]
    assert body["concepts"][0]["name"] == "Programming Basics"

    [card] = body["courses_by_stage"]["FOUNDATION"]
    assert card["id"] == course_id
    assert card["matchedTopics"] == ["HTML"]
    assert card["matchCount"] == 1
    assert card["matchScore"] == 100
    assert card["status"] == "PUBLISHED"
    assert card["category"]["name"] == "Programming"
    assert [t["name"] for t in card["tags"]] == ["html"]
    assert body["courses"] == [{"id": course_id, "stage": "FOUNDATION", "rationale": "Matched topics: HTML"}]

    assert fake_llm.calls[0]["json_mode"] is True
    assert "goal: Become a web developer" in fake_llm.calls[0]["messages"][0]["content"]


def test_unmatched_topic_is_stored_as_hidden_placeholder(client, fake_llm, make_user, auth_headers) -> None:
    user_id = make_user()
    fake_llm.response = _roadmap_reply([{"stage": "ADVANCED", "topics": ["Quantum Teleportation"]}])

    resp = _generate(client, auth_headers(user_id))
    assert resp.status_code == 200
    body = resp.json()
    assert body["courses_by_stage"] == {"ADVANCED": []}
    assert body["courses"] == []

    with SessionLocal() as db:
        [link] = db.query(RecommendationCourse).filter(RecommendationCourse.recommendation_id == body["id"]).all()
        assert link.course_id is None
        assert link.stage == "ADVANCED"
        assert link.rationale == "No matching course found for Quantum Teleportation"


def test_non_json_model_reply_yields_empty_recommendation(client, fake_llm, make_user, auth_headers) -> None:
    user_id = make_user()
    fake_llm.response = "not json"

    resp = _generate(client, auth_headers(user_id))
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] > 0
    assert body["roadmap"] == []
    assert body["courses_by_stage"] == {}
    assert body["courses"] == []

    with SessionLocal() as db:
        rec = db.get(Recommendation, body["id"])
        assert rec.output_json == {"concepts": [], "careers": [], "roadmap": [], "notes": []}


def test_model_failure_degrades_to_empty_roadmap(client, fake_llm, make_user, auth_headers) -> None:
    user_id = make_user()
    fake_llm.error = LLMError("Model call timed out after 60s")

    resp = _generate(client, auth_headers(user_id))
    assert resp.status_code == 200
    body = resp.json()
    assert body["roadmap"] == []
    assert body["courses_by_stage"] == {}


def test_course_matching_two_stages_is_shown_in_earliest(client, fake_llm, make_user, make_course, auth_headers) -> None:
    user_id = make_user()
    course_id = make_course("JavaScript Fundamentals", tags=["javascript"])
    fake_llm.response = _roadmap_reply(
        [
            {"stage": "INTERMEDIATE", "topics": [{"name": "DOM", "keywords": ["javascript"]}]},
            {"stage": "FOUNDATION", "topics": [{"name": "JavaScript", "keywords": ["javascript"]}]},
        ]
    )

    body = _generate(client, auth_headers(user_id)).json()

    assert [c["id"] for c in body["courses_by_stage"]["FOUNDATION"]] == [course_id]
    assert body["courses_by_stage"]["INTERMEDIATE"] == []
    assert body["courses"] == [{"id": course_id, "stage": "FOUNDATION", "rationale": "Matched topics: JavaScript"}]

    # Both links are persisted; dedup only affects what is shown.
    with SessionLocal() as db:
        stages = {
            link.stage
            for link in db.query(RecommendationCourse).filter(RecommendationCourse.recommendation_id == body["id"])
        }
        assert stages == {"FOUNDATION", "INTERMEDIATE"}


def test_visible_results_respect_cap_dedup_and_score_bounds(client, fake_llm, make_user, make_course, auth_headers) -> None:
    user_id = make_user()
    for i in range(5):
        make_course(f"Web Course {i}", tags=["web"])
    fake_llm.response = _roadmap_reply(
        [
            {"stage": "FOUNDATION", "topics": [{"name": "Web", "keywords": ["web"]}, "HTML", "CSS"]},
            {"stage": "INTERMEDIATE", "topics": [{"name": "Web APIs", "keywords": ["web"]}]},
            {"stage": "ADVANCED", "topics": [{"name": "Web Perf", "keywords": ["web"]}]},
        ]
    )

    body = _generate(client, auth_headers(user_id)).json()

    seen: list[int] = []
    for stage, items in body["courses_by_stage"].items():
        assert len(items) <= 3
        for item in items:
            assert 0 <= item["matchScore"] <= 100
            seen.append(item["id"])
    assert len(seen) == len(set(seen))
    assert body["courses_by_stage"]["FOUNDATION"][0]["matchScore"] == 33


def test_generate_requires_token_and_valid_body(client, make_user, auth_headers) -> None:
    assert _generate(client, {}).status_code == 401
    assert _generate(client, {"Authorization": "Bearer not-a-token"}).status_code == 401

    user_id = make_user()
    assert _generate(client, auth_headers(user_id), goal="   ").status_code == 422
    assert _generate(client, auth_headers(user_id + 99)).status_code == 401


def test_generate_without_model_client_is_unavailable(database, make_user, auth_headers) -> None:
    from edupath.main import create_app

    user_id = make_user()
    with TestClient(create_app()) as c:
        resp = _generate(c, auth_headers(user_id))
        assert resp.status_code == 503
        assert c.get("/health/").json()["llm"] == "disabled"


def test_failed_link_insert_returns_500_and_stores_nothing(client, fake_llm, make_user, auth_headers, monkeypatch) -> None:
    user_id = make_user()
    fake_llm.response = _roadmap_reply([{"stage": "FOUNDATION", "topics": ["HTML"]}])
    monkeypatch.setattr(
        recommendation_service,
        "aggregate_matches",
        lambda matches: [LinkDraft(stage=None, course_id=None, matched_topics=[], rationale="broken")],
    )

    resp = _generate(client, auth_headers(user_id))
    assert resp.status_code == 500

    with SessionLocal() as db:
        assert db.query(Recommendation).count() == 0
        assert db.query(RecommendationCourse).count() == 0


def test_save_flag_is_owner_only(client, fake_llm, make_user, auth_headers) -> None:
    owner = make_user("owner@example.com")
    other = make_user("other@example.com")
    fake_llm.response = "{}"
    rec_id = _generate(client, auth_headers(owner)).json()["id"]

    resp = client.post(f"/recommendations/{rec_id}/save", json={"saved": True}, headers=auth_headers(owner))
    assert resp.status_code == 200
    assert resp.json() == {"id": rec_id, "saved": True}
    with SessionLocal() as db:
        assert db.get(Recommendation, rec_id).input_json["saved"] is True

    assert client.post(f"/recommendations/{rec_id}/save", headers=auth_headers(owner)).json()["saved"] is False
    assert client.post(f"/recommendations/{rec_id}/save", json={"saved": True}, headers=auth_headers(other)).status_code == 404
    assert client.post("/recommendations/999999/save", json={"saved": True}, headers=auth_headers(owner)).status_code == 404


def test_followup_uses_stored_context(client, fake_llm, make_user, auth_headers) -> None:
    owner = make_user("owner@example.com")
    other = make_user("other@example.com")
    fake_llm.response = _roadmap_reply([{"stage": "FOUNDATION", "topics": ["HTML"]}])
    rec_id = _generate(client, auth_headers(owner)).json()["id"]

    fake_llm.response = "Start with HTML, then CSS."
    resp = client.post(
        f"/recommendations/{rec_id}/followup",
        json={"question": "What should I learn first?"},
        headers=auth_headers(owner),
    )
    assert resp.status_code == 200
    assert resp.json() == {"id": rec_id, "question": "What should I learn first?", "answer": "Start with HTML, then CSS."}

    messages = fake_llm.calls[-1]["messages"]
    assert messages[0]["role"] == "system"
    assert "Become a web developer" in messages[1]["content"]
    assert '"stage": "FOUNDATION"' in messages[1]["content"]

    denied = client.post(f"/recommendations/{rec_id}/followup", json={"question": "hi"}, headers=auth_headers(other))
    assert denied.status_code == 404

    fake_llm.error = LLMError("boom")
    failed = client.post(f"/recommendations/{rec_id}/followup", json={"question": "hi"}, headers=auth_headers(owner))
    assert failed.status_code == 502


def test_clarify_vague_question_as_guest(client, fake_llm) -> None:
    fake_llm.response = (
        "Happy to help! A few questions: What do you want to build? How much time do you have?\n"
        "Next steps:\n- Install VS Code\n- Learn HTML basics\n- Build a one-page site"
    )

    resp = client.post("/recommendations/clarify", json={"question": "hi"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["question"] == "hi"
    assert body["answer"]
    assert len(body["answer"].split()) <= 250

    system, user = fake_llm.calls[-1]["messages"]
    assert "Answer in English." in system["content"]
    assert "UserId: guest" in user["content"]
    assert "clarifying questions" in user["content"]
    assert "concrete next steps" in user["content"]


def test_clarify_clips_long_answers_and_reports_user(client, fake_llm, make_user, auth_headers) -> None:
    user_id = make_user()
    fake_llm.response = " ".join(f"word{i}" for i in range(400))

    resp = client.post(
        "/recommendations/clarify",
        json={"question": "How do I become a backend developer?", "context": {"goal": "backend"}},
        headers=auth_headers(user_id),
    )
    assert resp.status_code == 200
    answer = resp.json()["answer"]
    assert len(answer.split()) == 250
    assert answer.endswith("word249…")
    assert f"UserId: {user_id}" in fake_llm.calls[-1]["messages"][1]["content"]


def test_clarify_errors(client, fake_llm) -> None:
    assert client.post("/recommendations/clarify", json={"question": "  "}).status_code == 422
    bad_token = client.post("/recommendations/clarify", json={"question": "hi"}, headers={"Authorization": "Bearer x"})
    assert bad_token.status_code == 401

    fake_llm.error = LLMError("boom")
    assert client.post("/recommendations/clarify", json={"question": "hi"}).status_code == 502


def test_clip_words() -> None:
    assert recommendation_service.clip_words("one two three", 5) == "one two three"
    assert recommendation_service.clip_words("one, two, three", 2) == "one, two…"


def test_catalog_queries_run_off_the_event_loop(client, fake_llm, make_user, make_course, auth_headers, monkeypatch) -> None:
    import asyncio

    from edupath.services import catalog_matcher

    user_id = make_user()
    make_course("HTML5 Basics", tags=["html"])
    fake_llm.response = _roadmap_reply([{"stage": "FOUNDATION", "topics": ["HTML", "CSS"]}])

    original = catalog_matcher.find_courses_for_keywords
    on_loop: list[bool] = []

    def spy(db, keywords):
        try:
            asyncio.get_running_loop()
            on_loop.append(True)
        except RuntimeError:
            on_loop.append(False)
        return original(db, keywords)

    monkeypatch.setattr(catalog_matcher, "find_courses_for_keywords", spy)

    resp = _generate(client, auth_headers(user_id))
    assert resp.status_code == 200
    assert on_loop == [False, False]


def test_clarify_accepts_any_json_context(client, fake_llm) -> None:
    fake_llm.response = "Try building a small page."

    for context in ("I like games", ["html", "css"], 3, None):
        resp = client.post("/recommendations/clarify", json={"question": "Where do I start?", "context": context})
        assert resp.status_code == 200

    assert 'Context (optional JSON): ["html", "css"]' in fake_llm.calls[1]["messages"][1]["content"]
    assert "Context (optional JSON): {}" in fake_llm.calls[3]["messages"][1]["content"]


def test_clip_words_keeps_line_breaks() -> None:
    text = "Questions:\n- a\n- b\n\nSteps:\n- step 0\n- step 1\n- step 2"
    assert recommendation_service.clip_words(text, 9) == "Questions:\n- a\n- b\n\nSteps:\n- step 0…"
    assert recommendation_service.clip_words(text, 50) == text
