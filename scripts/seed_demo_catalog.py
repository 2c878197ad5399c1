from __future__ import annotations

import argparse
import sys
from datetime import timedelta
from pathlib import Path


def _bootstrap_import_path() -> None:
    # Allow running as: python scripts/seed_demo_catalog.py
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from edupath.database import Base, SessionLocal, engine  # noqa: E402
from edupath.models import ApprovalStatus, Course, CourseCategory, CourseLevel, CourseStatus, Tag, User  # noqa: E402
from edupath.utils.jwt_handler import create_access_token  # noqa: E402


DEMO_COURSES: list[dict] = [
    {"title": "HTML5 Basics", "description": "Structure web pages with semantic HTML.", "tags": ["html", "web"]},
    {"title": "CSS Layouts", "description": "Flexbox, grid and responsive design.", "tags": ["css", "web"]},
    {"title": "JavaScript Fundamentals", "description": "Variables, functions and the DOM.", "tags": ["javascript"]},
    {"title": "React in Practice", "description": "Components, hooks and state.", "tags": ["react", "javascript"]},
    {"title": "Node.js APIs", "description": "Build REST backends with Express.", "tags": ["node", "backend"]},
    {"title": "Intro to SQL", "description": "Query relational databases.", "tags": ["sql", "database"]},
]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed a small published catalog and a demo user for local runs.")
    parser.add_argument("--email", default="demo@example.com", help="Demo learner email")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        user = db.query(User).filter(User.email == args.email).first()
        if user is None:
            user = User(email=args.email, first_name="Demo", last_name="Learner")
            db.add(user)
            db.flush()

        category = db.query(CourseCategory).filter(CourseCategory.name == "Programming").first()
        if category is None:
            category = CourseCategory(name="Programming", description="Software development")
            db.add(category)
            db.flush()

        inserted = 0
        for entry in DEMO_COURSES:
            if db.query(Course).filter(Course.title == entry["title"]).first():
                continue
            tags: list[Tag] = []
            for name in entry["tags"]:
                tag = db.query(Tag).filter(Tag.name == name).first()
                if tag is None:
                    tag = Tag(name=name)
                    db.add(tag)
                    db.flush()
                tags.append(tag)
            db.add(
                Course(
                    title=entry["title"],
                    description=entry["description"],
                    level=CourseLevel.BEGINNER,
                    status=CourseStatus.PUBLISHED,
                    approval_status=ApprovalStatus.APPROVED,
                    instructor_id=user.id,
                    category_id=category.id,
                    tags=tags,
                )
            )
            inserted += 1
        db.commit()

        token = create_access_token({"sub": str(user.id)}, timedelta(days=1))

    print(f"seeded courses={inserted}")
    print(f"demo token ({args.email}): {token}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
