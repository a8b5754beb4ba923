"""Content database access through the Supabase REST interface."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib import error as urllib_error, parse as urllib_parse, request as urllib_request

from .models import ContentStoreError

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    """Write and read operations used by the content importer."""

    def upsert(
        self,
        table: str,
        rows: Sequence[Dict[str, Any]],
        *,
        on_conflict: Optional[str] = None,
    ) -> None:
        ...

    def select(self, table: str, columns: Sequence[str]) -> List[Dict[str, Any]]:
        ...


class SupabaseRestStore:
    """PostgREST client authenticated with the service-role key."""

    def __init__(self, *, base_url: str, service_role_key: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_role_key = service_role_key
        self._timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _url(self, table: str, params: Dict[str, str]) -> str:
        query = urllib_parse.urlencode(params, safe=",*") if params else ""
        url = f"{self._base_url}/rest/v1/{urllib_parse.quote(table)}"
        return f"{url}?{query}" if query else url

    def _send(self, table: str, request: urllib_request.Request) -> bytes:
        try:
            with urllib_request.urlopen(request, timeout=self._timeout) as response:
                return response.read()
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ContentStoreError(f"{table}: HTTP {exc.code} {detail}".strip()) from exc
        except urllib_error.URLError as exc:
            raise ContentStoreError(f"{table}: {exc.reason}") from exc

    def upsert(
        self,
        table: str,
        rows: Sequence[Dict[str, Any]],
        *,
        on_conflict: Optional[str] = None,
    ) -> None:
        if not rows:
            return
        params = {"on_conflict": on_conflict} if on_conflict else {}
        headers = self._headers()
        headers["Prefer"] = "resolution=merge-duplicates,return=minimal"
        request = urllib_request.Request(
            self._url(table, params),
            data=json.dumps(list(rows), default=str).encode("utf-8"),
            headers=headers,
            method="POST",
        )
        self._send(table, request)
        logger.debug("Upserted %s rows into %s", len(rows), table)

    def select(self, table: str, columns: Sequence[str]) -> List[Dict[str, Any]]:
        request = urllib_request.Request(
            self._url(table, {"select": ",".join(columns)}),
            headers=self._headers(),
            method="GET",
        )
        body = self._send(table, request)
        try:
            rows = json.loads(body.decode("utf-8") or "[]")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ContentStoreError(f"{table}: invalid response body") from exc
        if not isinstance(rows, list):
            raise ContentStoreError(f"{table}: expected a list of rows")
        return rows


__all__ = ["ContentStore", "SupabaseRestStore"]
