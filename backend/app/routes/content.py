"""Admin route importing static curriculum content into the database."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse

from ... import app_context
from ..content import ContentImportError, ImportStats
from ..schemas.content import ContentImportFailure, ContentImportResponse
from ..services import content as content_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["content"])


@router.post("/import", response_model=ContentImportResponse)
def import_content(
    dry_run: bool = Query(False),
    import_secret: Optional[str] = Header(None, alias="x-import-secret"),
):
    config = app_context.get_config()
    if not content_service.is_valid_import_secret(import_secret, config):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - invalid or missing import secret",
        )

    if not config.supabase_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Missing Supabase configuration",
        )

    store = content_service.create_content_store(config)
    stats = ImportStats()
    try:
        duration_ms = content_service.run_content_import(store, config, dry_run=dry_run, stats=stats)
    except ContentImportError as exc:
        logger.exception("Content import error")
        stats.errors.append(str(exc))
        failure = ContentImportFailure(stats=stats, details=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=failure.model_dump(),
        )

    return ContentImportResponse(
        success=True,
        dry_run=dry_run,
        duration_ms=duration_ms,
        stats=stats,
        message=(
            "Dry run completed - no changes made to database"
            if dry_run
            else "Content import completed successfully"
        ),
    )
