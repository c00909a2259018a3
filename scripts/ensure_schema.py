"""
Bring the database schema up to date without dropping data.

Creates any tables declared on the models that are missing from the
database. Existing tables and rows are left alone.

Usage:
  python scripts/ensure_schema.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from sqlalchemy import inspect

# make the project root importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from camphq import create_app  # type: ignore
from camphq.extensions import db  # type: ignore

COMPENSATION_TABLES = (
    "compensation_plan",
    "camp_session_compensation",
    "camp_day_compensation_snapshot",
)


def _tables() -> set[str]:
    return set(inspect(db.engine).get_table_names())


def main() -> int:
    print("[ensure] loading app...")
    app = create_app()
    with app.app_context():
        print(f"[ensure] SQLALCHEMY_DATABASE_URI = {app.config.get('SQLALCHEMY_DATABASE_URI', '')}")

        before = _tables()
        print(f"[ensure] tables before: {len(before)}")

        # register every model on the metadata
        from camphq import models  # noqa: F401

        db.create_all()

        after = _tables()
        created = sorted(after - before)
        if created:
            print(f"[ensure] created: {', '.join(created)}")
        else:
            print("[ensure] nothing to create.")

        missing = [t for t in COMPENSATION_TABLES if t not in after]
        if missing:
            print(f"[ensure] still missing: {', '.join(missing)}")
            return 1
        print("[ensure] done.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
