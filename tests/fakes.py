"""
In-memory stand-ins for PostgreSQL and the wall clock.
"""

import asyncio

from finreports.exceptions import DataFetchError
from finreports.schemas import ProfitLossRow, RevenueByCategoryRow, TopCustomerRow, UserRecord


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeReportSource:
    """
    In-memory stand-in for the stored procedures.

    fail        — set of report kinds that raise DataFetchError
    delays      — per-kind asyncio.sleep() before answering
    clock/cost  — when given, each fetch advances the clock by `cost` seconds
    """

    def __init__(self, clock: FakeClock | None = None, cost: float = 0.0):
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.delays: dict[str, float] = {}
        self._clock = clock
        self._cost = cost

    async def _answer(self, kind: str, *params):
        self.calls.append((kind, *params))
        if kind in self.delays:
            await asyncio.sleep(self.delays[kind])
        if self._clock is not None:
            self._clock.advance(self._cost)
        if kind in self.fail:
            raise DataFetchError(f"failed to execute stored procedure: {kind} is down")

    async def fetch_profit_loss(self, start, end):
        await self._answer("profit_loss", start, end)
        return [
            ProfitLossRow(category_name="Sales", category_type="income",
                          total_amount=1500.0, transaction_count=12),
            ProfitLossRow(category_name="Rent", category_type="expense",
                          total_amount=800.0, transaction_count=1),
        ]

    async def fetch_revenue_by_category(self, start, end):
        await self._answer("revenue_category", start, end)
        return [
            RevenueByCategoryRow(category_name="Sales", revenue_amount=1500.0,
                                 transaction_count=12, average_transaction=125.0),
        ]

    async def fetch_top_customers(self, start, end, limit):
        await self._answer("top_customers", start, end, limit)
        return [
            TopCustomerRow(customer_id=f"c{i}", customer_name=f"Customer {i}",
                           total_revenue=100.0 * (limit - i), transaction_count=limit - i,
                           average_transaction=100.0)
            for i in range(min(limit, 3))
        ]

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class FakeUserStore:
    def __init__(self, users: list[UserRecord]):
        self._users = {u.username: u for u in users}

    async def get_user_by_username(self, username):
        return self._users.get(username)

