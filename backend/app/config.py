import sys

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from app.logging import get_logger

logger = get_logger(__name__)


class Settings(BaseSettings):
    app_name: str = "food-sorted"
    env: str = "local"
    port: int = 3000
    log_level: str = "INFO"

    database_url: str
    db_pool_size: int = 20
    db_pool_timeout_s: int = 2
    db_pool_recycle_s: int = 30

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60

    # Chat answers 503 while this is empty.
    llm_api_key: str = ""
    llm_base_url: str = "https://api.anthropic.com/v1/messages"
    llm_api_version: str = "2023-06-01"
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_max_tokens: int = 4096
    llm_timeout_s: float = 60.0

    utm_source: str = "my-food-sorted"
    # Comma-separated. Empty or "*" allows every origin (dev only).
    cors_origins: str = ""
    json_body_limit_bytes: int = 50 * 1024

    # Chat messages a user may send before getting 429. 0 disables the quota.
    message_quota_per_user: int = 10

    expose_error_detail: bool = True

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def allowed_origins(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        if not origins or "*" in origins:
            return ["*"]
        return origins


def load_settings() -> Settings:
    """Build settings once at startup. Missing secrets are fatal."""
    try:
        settings = Settings()
    except ValidationError as exc:
        missing = [".".join(str(p) for p in err["loc"]).upper() for err in exc.errors()]
        logger.critical(
            "FATAL: invalid configuration for %s. Set them in .env (and never commit real secrets).",
            ", ".join(missing),
        )
        sys.exit(1)
    blank = [name for name in ("database_url", "jwt_secret") if not getattr(settings, name).strip()]
    if blank:
        logger.critical("FATAL: %s is required.", ", ".join(n.upper() for n in blank))
        sys.exit(1)
    if settings.is_production:
        settings.expose_error_detail = False
    return settings
