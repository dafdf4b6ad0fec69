"""
Configuration
=============

Every tunable of the help-desk service in one pydantic-settings model.
Values come from environment variables (case-insensitive) and, when
present, a ``.env`` file in the working directory.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = ("development", "staging", "production", "test")
LLM_PROVIDERS = ("gemini", "openai", "mock")


class Settings(BaseSettings):
    """Service settings; unknown variables are ignored."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ========== Service ==========
    app_name: str = "sistec-helpdesk"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", description="One of ENVIRONMENTS")
    debug: bool = Field(default=False, description="Echo SQL and expose tracebacks in logs")
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # ========== Persistence ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/sistec",
        description="SQLAlchemy URL; must name an async driver"
    )
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)
    create_tables_on_startup: bool = Field(
        default=True,
        description="Create missing tables when the app boots"
    )

    # ========== Generative AI ==========
    llm_provider: str = Field(default="gemini", description="One of LLM_PROVIDERS")
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    llm_model: str = Field(
        default="gemini-2.0-flash",
        description="Model name sent with both the triage and the solution prompt"
    )
    llm_temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    llm_max_tokens: int = Field(default=1000, ge=1, le=8000)
    llm_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single provider call"
    )

    # ========== Triage ==========
    triage_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Seconds between an approval commit and its triage job"
    )
    triage_history_limit: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Earlier tickets of the requester shown to the classifier"
    )
    triage_recovery_on_startup: bool = Field(
        default=True,
        description="Re-queue tickets found in Aprovado or Triagem IA at boot"
    )

    # ========== HTTP ==========
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ENVIRONMENTS:
            raise ValueError(f"unknown environment {v!r}, expected one of {ENVIRONMENTS}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Accept any casing, store lowercase."""
        provider = v.lower()
        if provider not in LLM_PROVIDERS:
            raise ValueError(f"unknown llm_provider {v!r}, expected one of {LLM_PROVIDERS}")
        return provider


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
