# app/db/init_db.py
from __future__ import annotations

import argparse

from sqlalchemy import Engine, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.session import engine
from app.db.base import Base

# Import all models so metadata is complete
import app.models  # noqa: F401
from app.services.user_service import seed_roles


def print_tables(bind: Engine) -> set:
    names = sorted(inspect(bind).get_table_names())
    print("Existing tables:", names)
    return set(names)


def run(fresh: bool = False, bind: Engine = engine) -> None:
    if fresh:
        print("WARNING: Dropping ALL tables (dev only) …")
        Base.metadata.drop_all(bind=bind)

    print("Creating all missing tables …")
    Base.metadata.create_all(bind=bind)
    print_tables(bind)

    try:
        with Session(bind) as db:
            roles = seed_roles(db)
            db.commit()
            print("Roles seeded:", [r.role_name for r in roles])
    except SQLAlchemyError as e:
        print("Seeding failed:", e)
        raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Initialize DB (create tables, seed roles).")
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Drop & recreate all tables (DEV ONLY).",
    )
    args = parser.parse_args()
    run(fresh=args.fresh)
