"""Minimal client for the hosted Supabase store (PostgREST over HTTPS)."""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Sequence
from urllib import error, parse, request

logger = logging.getLogger("activitylog.store")

REST_PREFIX = "/rest/v1"


class StoreError(RuntimeError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"HTTP {self.status}: {self.message}"


def _error_message(body: str) -> str:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return body[:200] or "empty response"
    if isinstance(payload, dict):
        for key in ("message", "error_description", "error", "hint"):
            if payload.get(key):
                return str(payload[key])
    return body[:200]


def quote_filter_value(value: str) -> str:
    """Quote a value for use inside a PostgREST ``or=(...)`` list."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SupabaseStore:
    def __init__(self, url: str, key: str, timeout: float = 30.0):
        if not url or not key:
            raise ValueError("Supabase URL and key are required.")
        self.base_url = url.rstrip("/") + REST_PREFIX
        self.key = key
        self.timeout = timeout

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        params: Sequence[tuple[str, str]] | None = None,
        body: Any = None,
        prefer: str | None = None,
    ) -> Any:
        url = f"{self.base_url}/{table}"
        if params:
            url = f"{url}?{parse.urlencode(list(params))}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = request.Request(url, data=data, headers=self._headers(prefer), method=method)
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                payload = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise StoreError(_error_message(detail), status=exc.code) from exc
        except error.URLError as exc:
            raise StoreError(f"Store unreachable: {exc.reason}") from exc
        except (OSError, ValueError) as exc:
            # Timeouts and resets mid-response, or a body that is not UTF-8.
            raise StoreError(f"Store request failed: {exc!r}") from exc
        if not payload:
            return None
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise StoreError(f"Store returned invalid JSON: {exc}") from exc

    def upsert(self, table: str, rows: list[dict], on_conflict: str = "id") -> None:
        """Insert rows, replacing any existing row with the same key.

        Each row must carry every column: PostgREST only overwrites the
        columns present in the payload.
        """
        if not rows:
            return
        logger.debug("upsert %s rows=%d", table, len(rows))
        self._request(
            "POST",
            table,
            params=[("on_conflict", on_conflict)],
            body=rows,
            prefer="resolution=merge-duplicates,return=minimal",
        )

    def select(
        self,
        table: str,
        columns: Iterable[str] | str = "*",
        filters: Sequence[tuple[str, str]] = (),
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        select = columns if isinstance(columns, str) else ",".join(columns)
        params = [("select", select), *filters]
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        rows = self._request("GET", table, params=params)
        return rows or []

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        created = self._request("POST", table, body=rows, prefer="return=representation")
        return created or []
