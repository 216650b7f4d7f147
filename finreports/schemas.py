"""
finreports/schemas.py — Request / response models shared by the API and services.
"""
from datetime import date

from pydantic import BaseModel, Field

from finreports.exceptions import InvalidRangeError


class DateRange(BaseModel):
    """Inclusive calendar range; start must not be after end."""

    start: date
    end: date

    def ensure_ordered(self) -> None:
        if self.start > self.end:
            raise InvalidRangeError(self.start, self.end)

    def cache_key(self, kind: str, *extra) -> str:
        parts = [kind, self.start.isoformat(), self.end.isoformat(), *map(str, extra)]
        return ":".join(parts)


# ── Report rows ──────────────────────────────────────────────────────────────

class ProfitLossRow(BaseModel):
    category_name: str
    category_type: str
    total_amount: float
    transaction_count: int


class RevenueByCategoryRow(BaseModel):
    category_name: str
    revenue_amount: float
    transaction_count: int
    average_transaction: float


class TopCustomerRow(BaseModel):
    customer_id: str = ""
    customer_name: str
    total_revenue: float
    transaction_count: int
    average_transaction: float


# ── Report responses ─────────────────────────────────────────────────────────

class ReportResponse(BaseModel):
    execution_time_ms: int = 0
    cached: bool = False


class ProfitLossResponse(ReportResponse):
    data: list[ProfitLossRow] = Field(default_factory=list)


class RevenueByCategoryResponse(ReportResponse):
    data: list[RevenueByCategoryRow] = Field(default_factory=list)


class TopCustomersResponse(ReportResponse):
    data: list[TopCustomerRow] = Field(default_factory=list)


class ParallelReportsResponse(BaseModel):
    profit_loss: ProfitLossResponse
    revenue_category: RevenueByCategoryResponse
    top_customers: TopCustomersResponse
    total_execution_time_ms: int


# ── Auth ─────────────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class User(BaseModel):
    id: str
    username: str
    email: str = ""


class UserRecord(User):
    password_hash: str


class LoginResponse(BaseModel):
    token: str
    user: User
