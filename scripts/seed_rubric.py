from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from burhan.application.api import load_default_rubric
from burhan.infrastructure.config import DatabaseConfig
from burhan.infrastructure.db import make_engine_and_session
from burhan.infrastructure.exceptions import BurhanError
from burhan.infrastructure.uow import UnitOfWork
from burhan.utils.seed import initialise_database, seed_rubric


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Store the default Burhan rubric in the database")

    parser.add_argument(
        "--backend", choices=["sqlite", "mysql"], default=os.environ.get("DB_BACKEND", "sqlite")
    )
    parser.add_argument("--sqlite-path", default=os.environ.get("DB_SQLITE_PATH", "./burhan.db"))
    parser.add_argument("--mysql-host", default=os.environ.get("DB_MYSQL_HOST", "localhost"))
    parser.add_argument("--mysql-port", type=int, default=int(os.environ.get("DB_MYSQL_PORT", 3306)))
    parser.add_argument("--mysql-user", default=os.environ.get("DB_MYSQL_USER", "root"))
    parser.add_argument("--mysql-password", default=os.environ.get("DB_MYSQL_PASSWORD", ""))
    parser.add_argument("--mysql-database", default=os.environ.get("DB_MYSQL_DATABASE", "burhan"))
    parser.add_argument("--rubric-path", type=Path, default=None, help="Rubric JSON to store instead of the default")
    parser.add_argument("--force", action="store_true", help="Append a new version even if one exists")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = DatabaseConfig(
        backend=args.backend,
        sqlite_path=args.sqlite_path,
        mysql_host=args.mysql_host,
        mysql_port=args.mysql_port,
        mysql_user=args.mysql_user,
        mysql_password=args.mysql_password,
        mysql_database=args.mysql_database,
    )
    engine, SessionLocal = make_engine_and_session(cfg.get_connection_url())
    initialise_database(engine)

    try:
        rubric = load_default_rubric(args.rubric_path)
        with UnitOfWork(SessionLocal).begin() as session:
            version = seed_rubric(session, rubric, force=args.force)
    except BurhanError as exc:
        print(f"ERROR: {exc.message}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    if version is None:
        print("Rubric already present; nothing to do (use --force to append a new version).")
    else:
        print(f"Stored rubric version {version.version} ({len(rubric)} domains).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
