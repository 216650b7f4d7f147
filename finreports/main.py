"""
finreports/main.py — FastAPI app serving the financial reports.

Endpoints:
  GET    /health                        — Liveness check
  POST   /api/auth/login                — Exchange username/password for a token
  GET    /api/reports/profit-loss       — Profit & loss by category
  GET    /api/reports/revenue-category  — Revenue by category
  GET    /api/reports/top-customers     — Top customers (limit 1–100, default 10)
  GET    /api/reports/parallel          — All three reports computed concurrently
  DELETE /api/cache                     — Flush the report cache

Report endpoints take start_date / end_date as YYYY-MM-DD and require a
bearer token.
"""
import calendar
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from finreports.auth import AuthService, get_current_user
from finreports.cache import TTLCache
from finreports.config import settings
from finreports.database import (
    PostgresReportSource,
    PostgresUserStore,
    close_pool,
    create_pool,
    is_db_available,
)
from finreports.exceptions import AppException, InvalidDateError, app_exception_handler
from finreports.reports import ReportService, normalize_limit
from finreports.schemas import (
    DateRange,
    LoginRequest,
    LoginResponse,
    ParallelReportsResponse,
    ProfitLossResponse,
    ReportResponse,
    RevenueByCategoryResponse,
    TopCustomersResponse,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan (startup / shutdown) ───────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up…")
    await create_pool()

    report_cache: TTLCache[ReportResponse] = TTLCache(
        ttl_seconds=settings.cache_ttl_seconds,
        sweep_interval_seconds=settings.cache_sweep_interval_seconds,
    )
    report_cache.start()

    app.state.report_service = ReportService(report_cache, PostgresReportSource())
    app.state.auth_service = AuthService(PostgresUserStore())
    yield
    logger.info("Shutting down…")
    await report_cache.close()
    await close_pool()


# ── App instance ─────────────────────────────────────────────────────────────

app = FastAPI(
    title="Financial Reports API",
    description="Cached read-only financial reports over PostgreSQL",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)


# ── Dependencies ─────────────────────────────────────────────────────────────

def get_report_service(request: Request) -> ReportService:
    return request.app.state.report_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _one_month_before(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidDateError(value) from None


def parse_date_range(
    start_date: str | None = Query(None, description="YYYY-MM-DD, default one month ago"),
    end_date: str | None = Query(None, description="YYYY-MM-DD, default today"),
) -> DateRange:
    today = date.today()
    start = _parse_date(start_date) if start_date else _one_month_before(today)
    end = _parse_date(end_date) if end_date else today
    date_range = DateRange(start=start, end=end)
    date_range.ensure_ordered()
    return date_range


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok", "database": is_db_available()}


auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.login(req.username, req.password)


reports_router = APIRouter(
    prefix="/api/reports",
    tags=["reports"],
    dependencies=[Depends(get_current_user)],
)


@reports_router.get("/profit-loss", response_model=ProfitLossResponse)
async def profit_loss(
    date_range: DateRange = Depends(parse_date_range),
    service: ReportService = Depends(get_report_service),
):
    return await service.get_profit_loss(date_range)


@reports_router.get("/revenue-category", response_model=RevenueByCategoryResponse)
async def revenue_category(
    date_range: DateRange = Depends(parse_date_range),
    service: ReportService = Depends(get_report_service),
):
    return await service.get_revenue_by_category(date_range)


@reports_router.get("/top-customers", response_model=TopCustomersResponse)
async def top_customers(
    date_range: DateRange = Depends(parse_date_range),
    limit: str | None = Query(None, description="1–100, default 10"),
    service: ReportService = Depends(get_report_service),
):
    return await service.get_top_customers(date_range, normalize_limit(limit))


@reports_router.get(
    "/parallel",
    response_model=ParallelReportsResponse,
    summary="Compute all three reports concurrently",
)
async def parallel_reports(
    date_range: DateRange = Depends(parse_date_range),
    service: ReportService = Depends(get_report_service),
):
    return await service.get_multiple_reports_parallel(date_range)


@app.delete(
    "/api/cache",
    summary="Clear the report cache",
    dependencies=[Depends(get_current_user)],
)
async def clear_cache(service: ReportService = Depends(get_report_service)):
    service.clear_cache()
    return {"message": "Cache cleared."}


app.include_router(auth_router)
app.include_router(reports_router)
