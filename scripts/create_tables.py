"""Create the timeclock engine tables.

Usage:
    python scripts/create_tables.py [--database-url URL]

Creates time_entry and payment_adjustment if they do not exist yet.
"""

from __future__ import annotations

import argparse
import asyncio

from timeclock_engine.config import settings
from timeclock_engine.database import create_all, get_engine
from timeclock_engine.models import Base


async def create_tables(database_url: str) -> None:
    """Create all tables on the target database."""
    target = database_url.split("@")[1] if "@" in database_url else database_url
    print(f"Target database: {target}")

    engine = get_engine(database_url)
    try:
        await create_all(engine)
    finally:
        await engine.dispose()

    print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Create the timeclock engine tables")
    parser.add_argument(
        "--database-url",
        type=str,
        default=settings.database_url,
        help="Database URL (default: from settings)",
    )

    args = parser.parse_args()

    asyncio.run(create_tables(args.database_url))


if __name__ == "__main__":
    main()
