#!/usr/bin/env python3
"""
Ensure the product and country sales tables exist, optionally emptying them.

The loader never deduplicates against existing rows, so a run expects fresh
or truncated tables; --truncate provides that.
"""

import argparse
import logging
import sys
from typing import List, Optional

import psycopg2
from psycopg2 import sql

from sales_etl.config import Settings
from sales_etl.errors import PipelineError
from sales_etl.etl.load_funcs import table_identifier
from sales_etl.logging_setup import configure_logging

logger = logging.getLogger(__name__)

DDL_SALES_TABLE = sql.SQL(
    """
CREATE TABLE IF NOT EXISTS {} (
    id          TEXT,
    total_sales NUMERIC
);
"""
)


def ensure_tables(conn, tables: List[str], truncate: bool = False) -> None:
    """Create each table if missing (idempotent); truncate when asked."""
    with conn, conn.cursor() as cur:
        for table in tables:
            cur.execute(DDL_SALES_TABLE.format(table_identifier(table)))
            logger.info(f"Table {table} ensured")
            if truncate:
                cur.execute(sql.SQL("TRUNCATE {}").format(table_identifier(table)))
                logger.info(f"Table {table} truncated")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--truncate", action="store_true", help="Empty the tables after creating them"
    )
    parser.add_argument("--env-file", default=None)
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env(env_file=args.env_file)
    except PipelineError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1
    configure_logging(settings.log_level, settings.log_config)

    try:
        conn = psycopg2.connect(settings.require_conn_string())
    except (PipelineError, psycopg2.Error) as e:
        logger.error(f"Unable to connect to database: {e}")
        return 1
    try:
        logger.info("Ensuring target schema exists (idempotent).")
        ensure_tables(
            conn, [settings.product_table, settings.country_table], args.truncate
        )
        logger.info("Schema is ready.")
    except psycopg2.Error as e:
        logger.error(f"Failed to prepare tables: {e}")
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
