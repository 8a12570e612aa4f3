"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

_POSTGRES_SCHEMES = ("postgresql+asyncpg://", "postgresql://", "postgres://")


class Settings(BaseSettings):
    """Settings read from the environment (and `.env`), case-insensitive."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Study Group"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Database: either a full URL (hosted Postgres, possibly with sslmode) or parts
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "studygroup"
    postgres_password: str = ""
    postgres_db: str = "studygroup"

    def _database_url(self, scheme: str) -> str:
        if not self.database_url_override:
            return (
                f"{scheme}{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            )
        url = self.database_url_override
        for prefix in _POSTGRES_SCHEMES:
            if url.startswith(prefix):
                return scheme + url[len(prefix):]
        return url

    @computed_field
    @property
    def database_url(self) -> str:
        """Async (asyncpg) URL. Query params are dropped; asyncpg takes SSL via connect_args."""
        return self._database_url("postgresql+asyncpg://").split("?", 1)[0]

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Sync (psycopg2) URL for Alembic, query params kept."""
        return self._database_url("postgresql://")

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        url = self.database_url_override or ""
        return "sslmode=require" in url or "ssl=require" in url

    # Auth / JWT
    jwt_secret_key: str  # Required
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Google sign-in
    google_client_id: str  # Required

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Frontend and API on different domains need samesite="none" + secure cookies
    cookie_cross_domain: bool = False

    # Object storage (S3 or any S3-compatible endpoint)
    aws_access_key_id: str
    aws_secret_access_key: str
    aws_s3_bucket: str
    aws_s3_region: str = "us-east-2"
    aws_s3_endpoint_url: str | None = None  # MinIO/LocalStack, e.g. http://localhost:9000
    document_cache_control: str = "3600"
    document_download_url_expiration: int = 3600  # 1 hour
    max_document_size_bytes: int = 50 * 1024 * 1024  # 50MB

    # External AI service
    ai_service_url: str = "http://localhost:8000"
    # First-time indexing on the AI service is slow; later queries take seconds
    ai_query_timeout_seconds: float = 120.0
    ai_cache_timeout_seconds: float = 10.0
    ai_question_max_chars: int = 4000
    ai_error_detail_max_chars: int = 100

    # Classes
    system_prompt_max_chars: int = 2000
    class_code_length: int = 6


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    User-safe text for an exception.

    Development shows the exception itself; staging and production show
    `generic_message` so internals do not leak.
    """
    if get_settings().environment == "development":
        return str(error)
    return generic_message
