#!/usr/bin/env python3
"""Initialize the articles database with the configured vector dimension."""

import argparse
import asyncio
from typing import List, Optional

import asyncpg

from search_libs.common.config import BaseConfig
from search_libs.common.logging import configure_logging
from search_libs.document_store.schema import init_schema


async def init_database(config: BaseConfig, read_role: Optional[str] = None) -> None:
    """Create the schema using the write DSN."""
    dsn = config.hs_database_write_dsn or config.hs_database_dsn
    dimension = config.hs_embedding_dimension

    print(f"Initializing database with vector dimension: {dimension}")

    conn = await asyncpg.connect(dsn)
    try:
        await init_schema(conn, dimension, read_role=read_role)
        print("Database initialization completed successfully!")
    finally:
        await conn.close()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Create the articles schema")
    parser.add_argument("--read-role", help="Role to grant read-only search access")
    args = parser.parse_args(argv)

    config = BaseConfig()
    configure_logging("init_db", config.hs_log_level, config.hs_log_format)
    asyncio.run(init_database(config, read_role=args.read_role))


if __name__ == "__main__":
    main()
