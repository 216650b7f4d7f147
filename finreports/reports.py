"""
finreports/reports.py — Cached report service and the parallel composite fetch.

Reports supported:
  1. Profit & loss          → source.fetch_profit_loss()
  2. Revenue by category    → source.fetch_revenue_by_category()
  3. Top customers          → source.fetch_top_customers()  (limit 1–100)

Every report goes through the same path:
  - reject an inverted date range before touching cache or database
  - key = "<kind>:<start>:<end>[:<limit>]"
  - hit  → copy of the stored response, cached=True, this call's latency
  - miss → fetch, wrap with cached=False, store, return
Failures are never cached; the next identical request fetches again.

get_multiple_reports_parallel() runs all three concurrently and either
returns all three or raises the first failure, tagged with its report kind.
"""
import asyncio
import logging
import time
from datetime import date
from enum import Enum
from typing import Awaitable, Callable, Protocol, TypeVar

from finreports.cache import TTLCache
from finreports.exceptions import ReportFailedError
from finreports.schemas import (
    DateRange,
    ParallelReportsResponse,
    ProfitLossResponse,
    ProfitLossRow,
    ReportResponse,
    RevenueByCategoryResponse,
    RevenueByCategoryRow,
    TopCustomerRow,
    TopCustomersResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_CUSTOMERS_LIMIT = 10
MAX_TOP_CUSTOMERS_LIMIT = 100
PARALLEL_TOP_CUSTOMERS_LIMIT = 10

R = TypeVar("R", bound=ReportResponse)
T = TypeVar("T")


class ReportKind(str, Enum):
    PROFIT_LOSS      = "profit_loss"
    REVENUE_CATEGORY = "revenue_category"
    TOP_CUSTOMERS    = "top_customers"


class ReportSource(Protocol):
    async def fetch_profit_loss(self, start: date, end: date) -> list[ProfitLossRow]: ...

    async def fetch_revenue_by_category(
        self, start: date, end: date
    ) -> list[RevenueByCategoryRow]: ...

    async def fetch_top_customers(
        self, start: date, end: date, limit: int
    ) -> list[TopCustomerRow]: ...


def normalize_limit(value) -> int:
    """Top-customers limit: anything missing, non-integer or outside 1–100 becomes 10."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return DEFAULT_TOP_CUSTOMERS_LIMIT
    if limit < 1 or limit > MAX_TOP_CUSTOMERS_LIMIT:
        return DEFAULT_TOP_CUSTOMERS_LIMIT
    return limit


class ReportService:
    def __init__(
        self,
        cache: TTLCache[ReportResponse],
        source: ReportSource,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self._cache = cache
        self._source = source
        self._clock = clock

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock() - started) * 1000)

    async def _serve(
        self,
        key: str,
        response_cls: type[R],
        fetch: Callable[[], Awaitable[list]],
        started: float,
    ) -> R:
        cached, found = self._cache.get(key)
        if found and isinstance(cached, response_cls):
            logger.info("Cache hit: %s", key)
            return cached.model_copy(
                update={"cached": True, "execution_time_ms": self._elapsed_ms(started)},
                deep=True,
            )

        logger.info("Cache miss: %s", key)
        rows = await fetch()
        response = response_cls(
            data=rows,
            execution_time_ms=self._elapsed_ms(started),
            cached=False,
        )
        self._cache.set(key, response.model_copy(deep=True))
        return response

    # ── Single reports ───────────────────────────────────────────────────────

    async def get_profit_loss(self, date_range: DateRange) -> ProfitLossResponse:
        started = self._clock()
        date_range.ensure_ordered()
        return await self._serve(
            date_range.cache_key(ReportKind.PROFIT_LOSS.value),
            ProfitLossResponse,
            lambda: self._source.fetch_profit_loss(date_range.start, date_range.end),
            started,
        )

    async def get_revenue_by_category(
        self, date_range: DateRange
    ) -> RevenueByCategoryResponse:
        started = self._clock()
        date_range.ensure_ordered()
        return await self._serve(
            date_range.cache_key(ReportKind.REVENUE_CATEGORY.value),
            RevenueByCategoryResponse,
            lambda: self._source.fetch_revenue_by_category(date_range.start, date_range.end),
            started,
        )

    async def get_top_customers(
        self,
        date_range: DateRange,
        limit: int = DEFAULT_TOP_CUSTOMERS_LIMIT,
    ) -> TopCustomersResponse:
        started = self._clock()
        date_range.ensure_ordered()
        limit = normalize_limit(limit)
        return await self._serve(
            # limit is part of the key so different limits never collide
            date_range.cache_key(ReportKind.TOP_CUSTOMERS.value, limit),
            TopCustomersResponse,
            lambda: self._source.fetch_top_customers(date_range.start, date_range.end, limit),
            started,
        )

    # ── Composite ────────────────────────────────────────────────────────────

    async def get_multiple_reports_parallel(
        self, date_range: DateRange
    ) -> ParallelReportsResponse:
        """
        Run the three reports concurrently over the same range.

        The first failure wins and is raised as ReportFailedError; sibling
        tasks are left to finish, so their results may still land in the
        cache.  No partial result is ever returned.
        """
        started = self._clock()
        date_range.ensure_ordered()

        profit_loss, revenue_category, top_customers = await asyncio.gather(
            _tagged(ReportKind.PROFIT_LOSS, self.get_profit_loss(date_range)),
            _tagged(ReportKind.REVENUE_CATEGORY, self.get_revenue_by_category(date_range)),
            _tagged(
                ReportKind.TOP_CUSTOMERS,
                self.get_top_customers(date_range, PARALLEL_TOP_CUSTOMERS_LIMIT),
            ),
        )

        return ParallelReportsResponse(
            profit_loss=profit_loss,
            revenue_category=revenue_category,
            top_customers=top_customers,
            total_execution_time_ms=self._elapsed_ms(started),
        )

    def clear_cache(self) -> None:
        self._cache.clear()


async def _tagged(kind: ReportKind, report: Awaitable[T]) -> T:
    try:
        return await report
    except Exception as exc:
        logger.error("Report %s failed: %s", kind.value, exc)
        raise ReportFailedError(kind.value, exc) from exc
