# src/sales_etl/etl/load_funcs.py
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List

import psycopg2
import psycopg2.pool
from psycopg2 import sql

from sales_etl.errors import LoadError, WarehouseConnectionError

logger = logging.getLogger(__name__)


class LoadFailurePolicy(Enum):
    """What to do with the remaining keys of a table once one insert fails"""

    COLLECT = "collect"
    FAIL_FAST = "fail_fast"


@dataclass
class LoadReport:
    """Outcome of loading one aggregate into one table"""

    table: str
    inserted: List[str] = field(default_factory=list)
    errors: List[LoadError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class WarehousePool:
    """
    Thread-safe pool of warehouse connections.

    Created once per process; every pipeline invocation borrows its own
    connection through ``connection()``.
    """

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 5):
        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(minconn, maxconn, dsn)
        except psycopg2.Error as e:
            raise WarehouseConnectionError(
                f"Unable to connect to database: {e}"
            ) from e
        # getconn() raises instead of waiting once maxconn are checked out
        self._slots = threading.BoundedSemaphore(maxconn)
        logger.info("Successfully connected to the database")

    @contextmanager
    def connection(self) -> Iterator["psycopg2.extensions.connection"]:
        """Borrow a connection, waiting for a free one when all are in use."""
        self._slots.acquire()
        try:
            conn = self._pool.getconn()
        except psycopg2.Error as e:
            self._slots.release()
            raise WarehouseConnectionError(
                f"Unable to get a database connection: {e}"
            ) from e
        try:
            yield conn
        finally:
            # Broken connections are discarded instead of reused
            try:
                self._pool.putconn(conn, close=bool(conn.closed))
            finally:
                self._slots.release()

    def close(self) -> None:
        self._pool.closeall()
        logger.info("Database connection pool closed")


def table_identifier(table: str) -> sql.Composable:
    """Quote a table name, allowing an optional schema prefix."""
    return sql.Identifier(*table.split("."))


def _rollback(conn) -> None:
    try:
        conn.rollback()
    except psycopg2.Error as e:
        raise WarehouseConnectionError(
            f"Lost database connection during load: {e}"
        ) from e


def insert_aggregate(
    conn,
    table: str,
    data: Dict[str, float],
    policy: LoadFailurePolicy = LoadFailurePolicy.COLLECT,
) -> LoadReport:
    """
    Insert one (id, total_sales) row per key of an aggregate.

    Every key is committed on its own, so a failing key leaves the others
    untouched. Failures are collected in the returned report; with
    FAIL_FAST the remaining keys of this table are not attempted.
    """
    query = sql.SQL("INSERT INTO {} (id, total_sales) VALUES (%s, %s)").format(
        table_identifier(table)
    )
    report = LoadReport(table=table)

    for key in sorted(data):
        try:
            with conn.cursor() as cur:
                cur.execute(query, (key, data[key]))
            conn.commit()
        except psycopg2.Error as e:
            error = LoadError(table, key, e)
            logger.error(str(error))
            report.errors.append(error)
            _rollback(conn)
            if policy is LoadFailurePolicy.FAIL_FAST:
                logger.warning(
                    f"Stopping load of {table} after first failure "
                    f"({len(data) - len(report.inserted) - 1} keys not attempted)"
                )
                break
            continue

        report.inserted.append(key)
        logger.info(f"Successfully inserted {key} into {table}")

    logger.info(
        f"Loaded {len(report.inserted)}/{len(data)} rows into {table} "
        f"({len(report.errors)} failed)"
    )
    return report
