import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

DEFAULT_PORT = 3000
DEFAULT_WEBHOOK_TOLERANCE = 300  # seconds, Stripe's default replay window


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = _get(environ, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class Settings:
    """Runtime configuration. A missing credential disables its integration."""

    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_webhook_tolerance: int = DEFAULT_WEBHOOK_TOLERANCE
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    supabase_table: str = "payments"
    database_url: Optional[str] = None
    frontend_url: Optional[str] = None
    port: int = DEFAULT_PORT
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        frontend_url = _get(env, "FRONTEND_URL")
        if frontend_url:
            frontend_url = frontend_url.rstrip("/")

        origins = _get(env, "CORS_ORIGINS") or "*"

        return cls(
            stripe_secret_key=_get(env, "STRIPE_SECRET_KEY"),
            stripe_webhook_secret=_get(env, "STRIPE_WEBHOOK_SECRET"),
            stripe_webhook_tolerance=_get_int(env, "STRIPE_WEBHOOK_TOLERANCE", DEFAULT_WEBHOOK_TOLERANCE),
            supabase_url=_get(env, "SUPABASE_URL"),
            supabase_service_role_key=_get(env, "SUPABASE_SERVICE_ROLE_KEY"),
            supabase_table=_get(env, "SUPABASE_TABLE") or "payments",
            database_url=_get(env, "DATABASE_URL"),
            frontend_url=frontend_url,
            port=_get_int(env, "PORT", DEFAULT_PORT),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def stripe_enabled(self) -> bool:
        return self.stripe_secret_key is not None

    @property
    def webhook_enabled(self) -> bool:
        return self.stripe_enabled and self.stripe_webhook_secret is not None

    @property
    def supabase_enabled(self) -> bool:
        return self.supabase_url is not None and self.supabase_service_role_key is not None

    @property
    def success_url(self) -> Optional[str]:
        if not self.frontend_url:
            return None
        return f"{self.frontend_url}/success"

    @property
    def cancel_url(self) -> Optional[str]:
        if not self.frontend_url:
            return None
        return f"{self.frontend_url}/cancel"


def load_settings() -> Settings:
    # Force-load .env from the project root (reload-safe)
    load_dotenv(dotenv_path=ENV_PATH)
    return Settings.from_env()
