"""Environment configuration for billing and content integrations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os


PRICE_ENV_KEYS = (
    "PRICE_ESSENTIAL_MONTHLY",
    "PRICE_ESSENTIAL_ANNUAL",
    "PRICE_FAMILY_MONTHLY",
    "PRICE_FAMILY_ANNUAL",
    "PRICE_PLUS_MONTHLY",
    "PRICE_PLUS_ANNUAL",
)


@dataclass(frozen=True)
class AppConfig:
    """Credentials and bindings read from the deployment environment."""

    stripe_secret_key: Optional[str]
    stripe_webhook_secret: Optional[str]
    price_ids: Mapping[str, Optional[str]]
    database_url: Optional[str]
    supabase_url: Optional[str]
    supabase_service_role_key: Optional[str]
    content_import_secret: Optional[str]
    content_dir: str
    request_timeout_seconds: float

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key)

    @property
    def webhook_configured(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_webhook_secret)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


def _secret(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_app_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load :class:`AppConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    # The storefront exposes price ids with a NEXT_PUBLIC_ prefix; accept both.
    price_ids = {
        key: _secret(env_mapping.get(key)) or _secret(env_mapping.get(f"NEXT_PUBLIC_{key}"))
        for key in PRICE_ENV_KEYS
    }

    supabase_url = _secret(env_mapping.get("SUPABASE_URL")) or _secret(
        env_mapping.get("NEXT_PUBLIC_SUPABASE_URL")
    )

    return AppConfig(
        stripe_secret_key=_secret(env_mapping.get("STRIPE_SECRET_KEY")),
        stripe_webhook_secret=_secret(env_mapping.get("STRIPE_WEBHOOK_SECRET")),
        price_ids=price_ids,
        database_url=_secret(env_mapping.get("DATABASE_URL")),
        supabase_url=supabase_url.rstrip("/") if supabase_url else None,
        supabase_service_role_key=_secret(env_mapping.get("SUPABASE_SERVICE_ROLE_KEY")),
        content_import_secret=_secret(env_mapping.get("CONTENT_IMPORT_SECRET")),
        content_dir=env_mapping.get("CONTENT_DIR") or "public/content",
        request_timeout_seconds=max(
            1.0, _to_float(env_mapping.get("PROVIDER_TIMEOUT_SECONDS"), default=10.0)
        ),
    )


__all__ = ["AppConfig", "PRICE_ENV_KEYS", "load_app_config"]
