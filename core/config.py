from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Workforce Access API"
    ENV: str = "development"

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = Field(None, env="SUPABASE_URL")
    SUPABASE_ANON_KEY: Optional[str] = Field(None, env="SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(None, env="SUPABASE_SERVICE_ROLE_KEY")

    # -------------------------------------------------
    # RBAC
    # -------------------------------------------------
    # enforce | dry-run | disabled  (production always requires enforce)
    RBAC_ENFORCEMENT: str = Field("enforce", env="RBAC_ENFORCEMENT")
    RBAC_AUDIT_ENABLED: bool = Field(True, env="RBAC_AUDIT_ENABLED")

    # Bearer token that resolves to the audited system principal.
    # Unset = no system principal at all.
    RBAC_SYSTEM_TOKEN: Optional[str] = Field(None, env="RBAC_SYSTEM_TOKEN")

    # Header carrying the caller's selected tenant when the route has no company_id
    ACTIVE_COMPANY_HEADER: str = Field("X-Company-Id", env="ACTIVE_COMPANY_HEADER")

    ROLE_FACT_TIMEOUT_SECONDS: float = Field(
        5.0,
        env="ROLE_FACT_TIMEOUT_SECONDS",
        description="Upper bound for the concurrent role-fact lookups of one request",
    )

    # Guarded requests per client per minute (0 = no throttling)
    RBAC_RATE_LIMIT_PER_MINUTE: int = Field(0, env="RBAC_RATE_LIMIT_PER_MINUTE")

    # Only behind a proxy that overwrites X-Forwarded-For may it identify clients
    RBAC_TRUST_PROXY_HEADERS: bool = Field(False, env="RBAC_TRUST_PROXY_HEADERS")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True


# Instantiate settings
settings = Settings()
