"""
finreports/database.py — Async PostgreSQL access via asyncpg.

Security rules:
  - The reports are served by stored procedures; SQL text is fixed in code and
    only the date range / limit reach positional placeholders.
  - Statement timeout comes from settings.db_statement_timeout.

Resilience:
  - Pool creation failure is logged but does NOT crash the app; report and
    login calls then fail with DataFetchError until the database is back.

Report sources:
  - PostgresReportSource maps each stored-procedure result set into typed
    row models.  Every driver, network or timeout failure, and any row that
    does not fit its model (e.g. a NULL name), is re-raised as
    DataFetchError so callers only deal with one error type.
"""
import asyncio
import logging
from datetime import date
from typing import Any, Callable, TypeVar

import asyncpg
from pydantic import ValidationError

from finreports.config import settings
from finreports.exceptions import DataFetchError
from finreports.schemas import (
    ProfitLossRow,
    RevenueByCategoryRow,
    TopCustomerRow,
    UserRecord,
)

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None

T = TypeVar("T")

_DRIVER_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


# ---------------------------------------------------------------------------
# Pool lifecycle
# ---------------------------------------------------------------------------

async def create_pool() -> None:
    """
    Create the asyncpg connection pool.
    On failure the error is logged and _pool stays None.
    """
    global _pool
    server_settings = {}
    if settings.db_schema and settings.db_schema != "public":
        server_settings["search_path"] = settings.db_schema
    try:
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_statement_timeout,
            statement_cache_size=0,
            timeout=settings.db_connection_timeout,
            server_settings=server_settings or None,
        )
        logger.info("PostgreSQL pool created successfully.")
    except _DRIVER_ERRORS as exc:
        _pool = None
        logger.warning(
            "Could not connect to PostgreSQL — reports will be unavailable. "
            "Reason: %s", exc
        )


async def close_pool() -> None:
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("PostgreSQL pool closed.")


def is_db_available() -> bool:
    return _pool is not None


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise DataFetchError(
            "database is not connected; check DB_* settings and that "
            "PostgreSQL is reachable"
        )
    return _pool


# ---------------------------------------------------------------------------
# Report stored procedures
# ---------------------------------------------------------------------------

_SQL_PROFIT_LOSS = "SELECT * FROM sp_profit_loss($1, $2)"
_SQL_REVENUE_BY_CATEGORY = "SELECT * FROM sp_revenue_by_category($1, $2)"
_SQL_TOP_CUSTOMERS = "SELECT * FROM sp_top_customers($1, $2, $3)"


class PostgresReportSource:
    """Runs the report stored procedures. Pass a pool, or use the module pool."""

    def __init__(self, pool: asyncpg.Pool | None = None):
        self._pool = pool

    async def _fetch(self, sql: str, *params) -> list:
        pool = self._pool or get_pool()
        try:
            async with pool.acquire() as conn:
                return await conn.fetch(sql, *params)
        except _DRIVER_ERRORS as exc:
            logger.error("Stored procedure failed (%s): %s", sql, exc)
            raise DataFetchError(f"failed to execute stored procedure: {exc}") from exc

    @staticmethod
    def _scan(rows: list, build: Callable[[Any], T]) -> list[T]:
        try:
            return [build(r) for r in rows]
        except (ValidationError, TypeError, ValueError) as exc:
            logger.error("Unexpected stored procedure row: %s", exc)
            raise DataFetchError(f"failed to scan row: {exc}") from exc

    async def fetch_profit_loss(self, start: date, end: date) -> list[ProfitLossRow]:
        rows = await self._fetch(_SQL_PROFIT_LOSS, start, end)
        return self._scan(rows, lambda r: ProfitLossRow(
            category_name=r[0],
            category_type=r[1],
            total_amount=float(r[2] or 0),
            transaction_count=int(r[3] or 0),
        ))

    async def fetch_revenue_by_category(
        self, start: date, end: date
    ) -> list[RevenueByCategoryRow]:
        rows = await self._fetch(_SQL_REVENUE_BY_CATEGORY, start, end)
        return self._scan(rows, lambda r: RevenueByCategoryRow(
            category_name=r[0],
            revenue_amount=float(r[1] or 0),
            transaction_count=int(r[2] or 0),
            average_transaction=float(r[3] or 0),
        ))

    async def fetch_top_customers(
        self, start: date, end: date, limit: int
    ) -> list[TopCustomerRow]:
        rows = await self._fetch(_SQL_TOP_CUSTOMERS, start, end, limit)
        return self._scan(rows, lambda r: TopCustomerRow(
            # customer_id is nullable for walk-in sales
            customer_id=str(r[0]) if r[0] is not None else "",
            customer_name=r[1],
            total_revenue=float(r[2] or 0),
            transaction_count=int(r[3] or 0),
            average_transaction=float(r[4] or 0),
        ))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

_SQL_USER_BY_USERNAME = """
SELECT id, username, password_hash, email
FROM users
WHERE username = $1
"""


class PostgresUserStore:
    def __init__(self, pool: asyncpg.Pool | None = None):
        self._pool = pool

    async def get_user_by_username(self, username: str) -> UserRecord | None:
        pool = self._pool or get_pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(_SQL_USER_BY_USERNAME, username)
        except _DRIVER_ERRORS as exc:
            raise DataFetchError(f"failed to look up user: {exc}") from exc

        if row is None:
            return None
        try:
            return UserRecord(
                id=str(row["id"]),
                username=row["username"],
                password_hash=row["password_hash"],
                email=row["email"] or "",
            )
        except ValidationError as exc:
            raise DataFetchError(f"failed to scan user row: {exc}") from exc
