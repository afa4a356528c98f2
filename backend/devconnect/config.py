import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="DEVCONNECT_DATABASE_URL")
    database_pool_size: int = Field(10, alias="DEVCONNECT_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="DEVCONNECT_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="DEVCONNECT_DATABASE_ECHO")
    jwt_secret: str = Field("devconnect-dev-secret-change-me-before-deploying", alias="DEVCONNECT_JWT_SECRET")
    jwt_algorithm: str = Field("HS256", alias="DEVCONNECT_JWT_ALGORITHM")
    token_expire_minutes: int = Field(6000, alias="DEVCONNECT_TOKEN_EXPIRE_MINUTES")
    github_api_url: str = Field("https://api.github.com", alias="DEVCONNECT_GITHUB_API_URL")
    github_client_id: Optional[str] = Field(None, alias="DEVCONNECT_GITHUB_CLIENT_ID")
    github_client_secret: Optional[str] = Field(None, alias="DEVCONNECT_GITHUB_CLIENT_SECRET")
    github_timeout_seconds: float = Field(10.0, alias="DEVCONNECT_GITHUB_TIMEOUT_SECONDS")
    github_repo_limit: int = Field(5, ge=1, le=100, alias="DEVCONNECT_GITHUB_REPO_LIMIT")
    mutation_retries: int = Field(3, ge=1, alias="DEVCONNECT_MUTATION_RETRIES")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="DEVCONNECT_CORS_ORIGINS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
