"""
Schema management: ``python -m nexus_cards.db.create_tables [--drop]``.
"""
from __future__ import annotations

import argparse
import logging

from sqlalchemy.exc import SQLAlchemyError

from . import models  # noqa: F401  # registers every table on Base.metadata
from .session import Base, get_engine

logger = logging.getLogger(__name__)


def create_all() -> None:
    Base.metadata.create_all(bind=get_engine())


def drop_all() -> None:
    Base.metadata.drop_all(bind=get_engine())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create the Nexus Cards database schema.")
    parser.add_argument("--drop", action="store_true", help="drop every table first (destroys data)")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        if args.drop:
            drop_all()
            logger.info("Dropped all tables")
        create_all()
    except SQLAlchemyError as exc:
        logger.error("Failed to create tables: %s", exc)
        return 1
    logger.info("Database tables created (%d tables)", len(Base.metadata.tables))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
