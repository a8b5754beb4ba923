"""API schemas for the content import endpoint."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from ..content import ImportStats


class ContentImportResponse(BaseModel):
    success: bool
    dry_run: bool
    duration_ms: int
    stats: ImportStats
    message: str


class ContentImportFailure(BaseModel):
    success: bool = False
    error: str = "Import failed"
    stats: ImportStats
    details: Optional[str] = None
