from __future__ import annotations

import argparse

import uvicorn

from burhan.infrastructure.config import get_settings
from burhan.infrastructure.db import create_database_engine
from burhan.infrastructure.logging import configure_from_settings
from burhan.utils.seed import initialise_database

APP_PATH = "burhan.web.main:app"


def prepare_database() -> bool:
    """Create any missing tables before the first request hits them."""
    engine = create_database_engine()
    try:
        return initialise_database(engine)
    finally:
        engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Burhan assessment API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", dest="reload", action="store_false")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_from_settings(get_settings().logging)

    if prepare_database():
        print("[run-server] Database tables present.")
    else:
        print("[run-server] Created missing database tables.")

    uvicorn.run(
        APP_PATH,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
