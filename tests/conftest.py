from __future__ import annotations

import os
from datetime import timedelta
from typing import Any, Callable, Iterable

import pytest
from fastapi.testclient import TestClient


def pytest_configure() -> None:
    # Ensure the SQLAlchemy engine is created against sqlite for tests.
    os.environ.setdefault("DB_URL", "sqlite:///./test.db")
    os.environ["ORM_DB_URL"] = "sqlite:///./test.db"
    os.environ["ORM_USE_MYSQL"] = "false"
    os.environ["JWT_SECRET"] = "test-secret"
    os.environ["CORS_ORIGINS"] = '["http://localhost:3000"]'

    # Ensure local .env cannot point tests at a real model or change clarify limits.
    os.environ["ENVIRONMENT"] = "test"
    os.environ.pop("OPENAI_API_KEY", None)
    os.environ.pop("CLARIFY_MAX_WORDS", None)
    os.environ.pop("CLARIFY_LANGUAGE", None)


class FakeLLMClient:
    """Stands in for the model client: returns a canned reply and records every call."""

    def __init__(self, response: str = "", error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def complete(self, messages: list[dict[str, str]], *, json_mode: bool = False) -> str:
        self.calls.append({"messages": messages, "json_mode": json_mode})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture()
def database() -> None:
    from edupath.database import Base, engine
    import edupath.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture()
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def client(database: None, fake_llm: FakeLLMClient) -> Any:
    from edupath.main import create_app

    app = create_app(llm_client=fake_llm)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db(database: None) -> Any:
    from edupath.database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(database: None) -> Callable[..., int]:
    from edupath.database import SessionLocal
    from edupath.models.user import User

    def _make(email: str = "learner@example.com", first_name: str = "Test", last_name: str = "Learner") -> int:
        with SessionLocal() as session:
            user = User(email=email, first_name=first_name, last_name=last_name)
            session.add(user)
            session.commit()
            return user.id

    return _make


@pytest.fixture()
def auth_headers() -> Callable[[int], dict[str, str]]:
    from edupath.utils.jwt_handler import create_access_token

    def _headers(user_id: int) -> dict[str, str]:
        token = create_access_token({"sub": str(user_id)}, timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def make_course(database: None) -> Callable[..., int]:
    from edupath.database import SessionLocal
    from edupath.models.course import ApprovalStatus, Course, CourseCategory, CourseStatus, Tag

    def _make(
        title: str,
        *,
        description: str | None = None,
        tags: Iterable[str] = (),
        status: CourseStatus = CourseStatus.PUBLISHED,
        approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
        category: str | None = "Programming",
    ) -> int:
        with SessionLocal() as session:
            tag_rows = []
            for name in tags:
                tag = session.query(Tag).filter(Tag.name == name).first()
                if tag is None:
                    tag = Tag(name=name)
                    session.add(tag)
                tag_rows.append(tag)

            category_row = None
            if category:
                category_row = session.query(CourseCategory).filter(CourseCategory.name == category).first()
                if category_row is None:
                    category_row = CourseCategory(name=category)
                    session.add(category_row)

            course = Course(
                title=title,
                description=description,
                status=status,
                approval_status=approval_status,
                category=category_row,
                tags=tag_rows,
            )
            session.add(course)
            session.commit()
            return course.id

    return _make
