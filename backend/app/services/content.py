"""Application wiring for the content import job."""
from __future__ import annotations

import logging
import secrets
import time
from typing import Optional

from ..config import AppConfig
from ..content import (
    ContentImportError,
    ContentImporter,
    ContentStore,
    ImportStats,
    SupabaseRestStore,
    load_content_sources,
)

logger = logging.getLogger(__name__)


def is_valid_import_secret(provided: Optional[str], config: AppConfig) -> bool:
    expected = config.content_import_secret
    if not provided or not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def create_content_store(config: AppConfig) -> ContentStore:
    if not config.supabase_configured:
        raise RuntimeError("Missing Supabase configuration")
    return SupabaseRestStore(
        base_url=config.supabase_url,
        service_role_key=config.supabase_service_role_key,
        timeout=config.request_timeout_seconds,
    )


def run_content_import(
    store: ContentStore,
    config: AppConfig,
    *,
    dry_run: bool,
    stats: Optional[ImportStats] = None,
) -> int:
    """Load sources and import them, returning the elapsed milliseconds.

    ``stats`` is filled in place so callers can report partial progress
    when the import fails part way through. Content files with missing or
    mistyped fields are reported as :class:`ContentImportError`.
    """

    start = time.perf_counter()
    importer = ContentImporter(store=store, dry_run=dry_run, stats=stats if stats is not None else ImportStats())
    try:
        importer.run(load_content_sources(config.content_dir))
    except ContentImportError:
        raise
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise ContentImportError(f"Invalid content data: {exc!r}") from exc
    duration_ms = int((time.perf_counter() - start) * 1000)
    logger.info("Content import finished in %sms dry_run=%s", duration_ms, dry_run)
    return duration_ms


__all__ = ["create_content_store", "is_valid_import_secret", "run_content_import"]
