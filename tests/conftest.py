"""
Centralized Test Configuration.

No PostgreSQL is needed: report and user sources are replaced with
in-memory fakes, and a manual clock drives cache expiry.
"""

from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

from finreports.auth import AuthService, create_access_token, hash_password
from finreports.cache import TTLCache
from finreports.main import app
from finreports.reports import ReportService
from finreports.schemas import DateRange, User, UserRecord
from tests.fakes import FakeClock, FakeReportSource, FakeUserStore

DEMO_PASSWORD = "demo123"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def january():
    return DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))


@pytest.fixture
def source():
    return FakeReportSource()


@pytest.fixture
def report_cache():
    return TTLCache(ttl_seconds=300)


@pytest.fixture
def service(report_cache, source):
    return ReportService(report_cache, source)


@pytest.fixture(scope="session")
def demo_user_record():
    return UserRecord(
        id="1",
        username="demo",
        email="demo@example.com",
        password_hash=hash_password(DEMO_PASSWORD),
    )


@pytest.fixture
def auth_headers():
    token = create_access_token(User(id="1", username="demo"))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(service, demo_user_record):
    """ASGI client with services wired onto app.state (lifespan is not run)."""
    app.state.report_service = service
    app.state.auth_service = AuthService(FakeUserStore([demo_user_record]))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    del app.state.report_service
    del app.state.auth_service
