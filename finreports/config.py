"""
finreports/config.py — Centralised settings loaded from .env with validation.

Database Configuration:
  - Connection parts (DB_HOST, DB_PORT, DB_USER, DB_PASS, DB_NAME) come from
    the environment; database_url assembles them into a PostgreSQL DSN.
  - DB_SCHEMA selects the search_path for the stored procedures and the
    users table.
  - SSL is required in production and for any non-localhost host.
"""
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    db_host: str = Field("localhost", description="PostgreSQL host")
    db_port: int = Field(5434, description="PostgreSQL port")
    db_user: str = Field("postgres", description="PostgreSQL user")
    db_pass: str = Field("postgres", description="PostgreSQL password")
    db_name: str = Field("financial_db", description="PostgreSQL database name")
    db_schema: str = Field("public", description="Schema holding reports and users")

    server_host: str = Field("0.0.0.0", description="Bind address")
    server_port: int = Field(8080, description="Bind port")
    environment: str = Field("development", description="development | production")
    log_level: str = Field("INFO", description="Root log level")

    jwt_secret: str = Field(
        "financial_reporting_demo_secret_key_2024",
        description="HS256 signing secret for access tokens",
    )
    jwt_expire_hours: int = Field(24, description="Access token lifetime (hours)")

    cache_ttl_seconds: int = Field(300, description="Report cache time-to-live in seconds")
    cache_sweep_interval_seconds: int = Field(
        60, description="How often expired cache entries are purged"
    )

    db_pool_min_size: int = Field(1, description="Minimum pool connections")
    db_pool_max_size: int = Field(10, description="Maximum pool connections")
    db_connection_timeout: int = Field(10, description="Connection timeout (seconds)")
    db_statement_timeout: int = Field(30, description="Statement timeout (seconds)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        case_sensitive = False

    @validator('jwt_secret')
    def validate_jwt_secret(cls, v: str) -> str:
        if not v:
            raise ValueError("JWT_SECRET is required")
        return v

    @validator('cache_ttl_seconds', 'cache_sweep_interval_seconds')
    def validate_positive_interval(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"cache intervals must be positive, got: {v}")
        return v

    @property
    def database_url(self) -> str:
        ssl_mode = "disable"
        if self.environment == "production" or self.db_host != "localhost":
            ssl_mode = "require"
        return (
            f"postgresql://{self.db_user}:{self.db_pass}@{self.db_host}:{self.db_port}"
            f"/{self.db_name}?sslmode={ssl_mode}"
        )


try:
    settings = Settings()
except Exception as e:
    raise RuntimeError(
        f"Failed to load settings from .env: {e}\n"
        "Check the DB_* and JWT_* environment variables."
    ) from e
