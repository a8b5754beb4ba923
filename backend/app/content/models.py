"""Models for the static content import."""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


SUBJECT_IDS = ("math", "reading", "science", "social-studies")


class ContentImportError(Exception):
    """Raised when static content cannot be loaded or written."""


class ContentStoreError(ContentImportError):
    """Raised when the content database rejects a request."""


class ImportStats(BaseModel):
    """Per-table record counts produced by an import run."""

    subjects: int = 0
    courses: int = 0
    units: int = 0
    lessons: int = 0
    skills: int = 0
    standards: int = 0
    activities: int = 0
    diagnostic_forms: int = 0
    diagnostic_items: int = 0
    prompts: int = 0
    errors: List[str] = Field(default_factory=list)


class ContentSources(BaseModel):
    """Static content loaded from disk before import."""

    manifest: Dict[str, Dict[str, Dict[str, Any]]]
    skills: Dict[str, List[str]] = Field(default_factory=dict)
    diagnostic_banks: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    prompts: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


__all__ = [
    "ContentImportError",
    "ContentSources",
    "ContentStoreError",
    "ImportStats",
    "SUBJECT_IDS",
]
