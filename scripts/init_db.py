#!/usr/bin/env python
"""Create the DTR engine tables.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --database-url postgresql+asyncpg://...
    python scripts/init_db.py --dry-run
"""

import argparse
import asyncio
import sys

from sqlalchemy.ext.asyncio import AsyncEngine

from dtr_engine.config import get_settings
from dtr_engine.database import create_schema, get_engine
from dtr_engine.models import Base


async def create_tables(engine: AsyncEngine) -> None:
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the DTR engine tables")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Async database URL (default: DATABASE_URL from the environment)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the tables without creating them",
    )
    args = parser.parse_args()

    url = args.database_url or get_settings().database_url
    print(f"Database: {url.split('@')[-1]}")
    for table in Base.metadata.sorted_tables:
        print(f"  {table.name}")

    if args.dry_run:
        print("[DRY RUN] No tables created")
        return 0

    asyncio.run(create_tables(get_engine(url)))
    print("Tables created (existing tables are left untouched)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
