from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _bootstrap_import_path() -> None:
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from sqlalchemy import create_engine  # noqa: E402

from edupath.config import build_sqlalchemy_db_url, settings  # noqa: E402
from edupath.database import Base, build_connect_args, mask_db_url  # noqa: E402
import edupath.models  # noqa: F401,E402  # ensure all models are registered


# Catalog and user tables belong to other services; only these are ours to (re)create.
OWNED_TABLES = ("ai_recommendations", "ai_recommendation_courses", "learning_paths", "learning_path_items")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create the recommendation/learning-path ORM tables in the configured DB (EXPLICIT action)."
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Target DB URL (defaults to build_sqlalchemy_db_url(settings) from .env/env vars).",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Also create users/courses/tags tables (local sqlite setups without the platform DB).",
    )
    parser.add_argument(
        "--drop-first",
        action="store_true",
        help="Drop the selected tables before creating them (destroys stored recommendations and paths).",
    )
    parser.add_argument(
        "--i-understand",
        action="store_true",
        help="Required safety flag. Prevents accidental DDL against shared DBs.",
    )
    args = parser.parse_args(argv)

    if not args.i_understand:
        print("Refusing to run without --i-understand (safety).")
        return 2

    url = args.db_url or build_sqlalchemy_db_url(settings)
    tables = list(Base.metadata.sorted_tables)
    if not args.all:
        tables = [t for t in tables if t.name in OWNED_TABLES]

    print("target:", mask_db_url(url))
    print("tables:", ", ".join(t.name for t in tables))

    engine = create_engine(url, pool_pre_ping=True, future=True, connect_args=build_connect_args(url))
    if args.drop_first:
        Base.metadata.drop_all(bind=engine, tables=tables)
        print("dropped")
    Base.metadata.create_all(bind=engine, tables=tables)
    print("done")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
