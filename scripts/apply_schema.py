#!/usr/bin/env python3
"""Apply db/schema.sql to a Postgres database, or print it with --print."""

from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path
import sys

import asyncpg  # type: ignore[import-untyped]

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "db" / "schema.sql"


def render_sql() -> str:
    return SCHEMA_PATH.read_text(encoding="utf-8")


async def apply_schema(database_url: str) -> None:
    conn = await asyncpg.connect(dsn=database_url)
    try:
        await conn.execute(render_sql())
    finally:
        await conn.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Apply the gigboard Postgres schema.")
    parser.add_argument("--database-url", default=os.getenv("GB_DATABASE_URL") or os.getenv("DATABASE_URL"))
    parser.add_argument("--print", dest="print_only", action="store_true", help="Print the SQL and exit")
    args = parser.parse_args()

    if args.print_only:
        print(render_sql())
        return 0
    if not args.database_url:
        print("GB_DATABASE_URL or --database-url is required", file=sys.stderr)
        return 1

    asyncio.run(apply_schema(args.database_url))
    print(f"schema applied from {SCHEMA_PATH}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
