"""Process-wide dependencies registered by the application entry point."""
from __future__ import annotations

from typing import Any, Callable, Optional

from backend.app.config import AppConfig, load_app_config

_get_conn: Optional[Callable[[], Any]] = None
_get_config: Optional[Callable[[], AppConfig]] = None


def configure(
    *,
    get_conn: Callable[[], Any],
    get_config: Optional[Callable[[], AppConfig]] = None,
) -> None:
    """Register the database connection factory and configuration loader."""

    global _get_conn
    global _get_config

    _get_conn = get_conn
    _get_config = get_config


def _require(value: Optional[Any], name: str) -> Any:
    if value is None:
        raise RuntimeError(f"Application context has not been configured yet: {name}")
    return value


def get_conn() -> Any:
    conn_factory = _require(_get_conn, "get_conn")
    return conn_factory()


def get_config() -> AppConfig:
    # Loaded on every call so credentials rotated in the environment take effect.
    loader = _get_config or load_app_config
    return loader()
