"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = "development"
    session_secret: str | None = None
    session_cookie_name: str = "sessionId"
    session_max_age_ms: int = 24 * 60 * 60 * 1000  # 24 hours
    session_secure: bool | None = None  # None: secure only in production
    session_http_only: bool = True
    session_same_site: str = "strict"
    session_path: str = "/"
    session_domain: str | None = None
    session_rolling: bool = True
    session_store: str = "memory"  # "memory", "file" or "redis"
    session_eviction: str = "timer"  # "timer" or "sweep" (memory store only)
    session_sweep_interval: float = 60.0
    session_dir: str = "./sessions"
    session_cleanup_interval: float = 60.0
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "sess:"
    login_url: str = "/login"
    api_prefix: str = "/api/"
    user_key: str = "user"
    role_key: str = "role"
    port: int = 3001

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        if self.session_secure is None:
            return self.is_production
        return self.session_secure

    model_config = {"env_prefix": "", "case_sensitive": False}


settings: Settings | None = None


def get_settings() -> Settings:
    global settings
    if settings is None:
        settings = Settings()
    return settings


def override_settings(s: Settings | None) -> None:
    """For testing: inject a Settings instance (``None`` resets to env)."""
    global settings
    settings = s
