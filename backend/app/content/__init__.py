"""Static curriculum content import."""

from .importer import ContentImporter
from .loader import load_content_sources
from .models import ContentImportError, ContentSources, ContentStoreError, ImportStats
from .store import ContentStore, SupabaseRestStore

__all__ = [
    "ContentImportError",
    "ContentImporter",
    "ContentSources",
    "ContentStore",
    "ContentStoreError",
    "ImportStats",
    "SupabaseRestStore",
    "load_content_sources",
]
