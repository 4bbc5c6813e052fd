"""interview_sync.record_store

Thin Notion REST client used by every sync flow.

Design principles:
  - One requests.Session per run, bearer-token auth, pinned API version.
  - Every call carries a timeout; a hung socket never blocks the run.
  - Transient failures (transport errors, 429, 5xx) are retried with
    exponential backoff and jitter; Retry-After is honored on 429.
  - 401/403 raise AuthError, which callers treat as fatal for the run.
  - Any other non-2xx raises RemoteCallError immediately.
  - Pagination is sequential: the next cursor only exists once the
    previous page has been returned.

Safe to share across worker threads: Session is only used for independent
requests and the call statistics are guarded by a lock.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Iterator

import requests

log = logging.getLogger(__name__)

API_BASE_URL = "https://api.notion.com/v1"
API_VERSION = "2022-06-28"
PAGE_SIZE = 100

_RETRYABLE_STATUS = frozenset({409, 429})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RemoteCallError(Exception):
    """Raised when a record-store call fails after all retries."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


class AuthError(RemoteCallError):
    """Raised on 401/403; the integration token is missing access."""


# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------

@dataclass
class Backoff:
    """Exponential backoff with jitter for a single call's retry loop."""

    base_delay: float = 1.0
    jitter: float = 0.5
    max_delay: float = 32.0
    max_attempts: int = 5

    def delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to wait before retry number ``attempt`` (1-based)."""
        if retry_after is not None:
            return min(max(retry_after, 0.0), self.max_delay)
        delay = self.base_delay * (2.0 ** (attempt - 1))
        delay += random.uniform(0.0, self.jitter)
        return min(delay, self.max_delay)

    def sleep(self, attempt: int, retry_after: float | None = None) -> None:
        time.sleep(self.delay(attempt, retry_after))


@dataclass
class CallStats:
    requests_sent: int = 0
    retries: int = 0
    rate_limit_hits: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def bump(self, name: str) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + 1)


@dataclass
class QueryPage:
    results: list[dict[str, Any]]
    next_cursor: str | None


def _parse_retry_after(resp: requests.Response) -> float | None:
    raw = resp.headers.get("Retry-After")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _error_detail(resp: requests.Response) -> tuple[str | None, str]:
    """Return (code, message) from a Notion error body, tolerating non-JSON."""
    try:
        body = resp.json()
    except ValueError:
        return None, resp.text[:200]
    if not isinstance(body, dict):
        return None, str(body)[:200]
    return body.get("code"), str(body.get("message") or "")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class NotionRecordStore:
    """Notion database/page/block operations with retry and timeouts."""

    def __init__(
        self,
        token: str,
        session: requests.Session | None = None,
        backoff: Backoff | None = None,
        timeout: float = 30.0,
        base_url: str = API_BASE_URL,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Notion-Version": API_VERSION,
            "Content-Type": "application/json",
        })
        self._backoff = backoff or Backoff()
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self.stats = CallStats()

    # ------------------------------------------------------------------ #
    # Transport                                                            #
    # ------------------------------------------------------------------ #

    def _request(
        self,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        last_error: RemoteCallError | None = None

        for attempt in range(1, self._backoff.max_attempts + 1):
            if attempt > 1:
                self.stats.bump("retries")
            self.stats.bump("requests_sent")
            try:
                resp = self._session.request(
                    method, url, json=json_body, params=params, timeout=self._timeout,
                )
            except requests.RequestException as exc:
                last_error = RemoteCallError(f"{method} {path}: {exc}")
                log.warning(
                    "%s %s transport error (attempt %d/%d): %s",
                    method, path, attempt, self._backoff.max_attempts, exc,
                )
                if attempt < self._backoff.max_attempts:
                    self._backoff.sleep(attempt)
                continue

            if resp.status_code in (401, 403):
                code, message = _error_detail(resp)
                raise AuthError(
                    f"{method} {path}: {resp.status_code} {message}",
                    status=resp.status_code,
                    code=code,
                )

            if resp.status_code in _RETRYABLE_STATUS or resp.status_code >= 500:
                code, message = _error_detail(resp)
                if resp.status_code == 429:
                    self.stats.bump("rate_limit_hits")
                last_error = RemoteCallError(
                    f"{method} {path}: {resp.status_code} {message}",
                    status=resp.status_code,
                    code=code,
                )
                log.warning(
                    "%s %s returned %s (attempt %d/%d)",
                    method, path, resp.status_code, attempt, self._backoff.max_attempts,
                )
                if attempt < self._backoff.max_attempts:
                    self._backoff.sleep(attempt, _parse_retry_after(resp))
                continue

            if resp.status_code >= 400:
                code, message = _error_detail(resp)
                raise RemoteCallError(
                    f"{method} {path}: {resp.status_code} {code or ''} {message}".strip(),
                    status=resp.status_code,
                    code=code,
                )

            return resp.json()

        if last_error is None:
            raise RemoteCallError(f"{method} {path}: no attempts allowed (max_attempts={self._backoff.max_attempts})")
        raise last_error

    # ------------------------------------------------------------------ #
    # Databases                                                            #
    # ------------------------------------------------------------------ #

    def query_table(self, database_id: str, cursor: str | None = None) -> QueryPage:
        """Fetch one page of a database query."""
        body: dict[str, Any] = {"page_size": PAGE_SIZE}
        if cursor:
            body["start_cursor"] = cursor
        data = self._request("POST", f"databases/{database_id}/query", json_body=body)
        next_cursor = data.get("next_cursor") if data.get("has_more") else None
        return QueryPage(results=list(data.get("results") or []), next_cursor=next_cursor)

    def iter_table(self, database_id: str) -> Iterator[list[dict[str, Any]]]:
        """Yield each result page of a database until the cursor runs out."""
        cursor: str | None = None
        while True:
            page = self.query_table(database_id, cursor)
            yield page.results
            if not page.next_cursor:
                return
            cursor = page.next_cursor

    # ------------------------------------------------------------------ #
    # Pages                                                                #
    # ------------------------------------------------------------------ #

    def create_page(self, database_id: str, properties: dict[str, Any]) -> str:
        data = self._request(
            "POST",
            "pages",
            json_body={"parent": {"database_id": database_id}, "properties": properties},
        )
        return str(data["id"])

    def update_page(self, page_id: str, properties: dict[str, Any]) -> None:
        self._request("PATCH", f"pages/{page_id}", json_body={"properties": properties})

    def list_relation_ids(self, page_id: str, property_id: str) -> list[str]:
        """All related page ids of a relation property, following its cursor.

        Page objects truncate relation values at 25 entries; this endpoint
        returns the full list.
        """
        ids: list[str] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"page_size": PAGE_SIZE}
            if cursor:
                params["start_cursor"] = cursor
            data = self._request(
                "GET", f"pages/{page_id}/properties/{property_id}", params=params,
            )
            for item in data.get("results") or []:
                rel = item.get("relation") or {}
                if rel.get("id"):
                    ids.append(str(rel["id"]))
            if not data.get("has_more") or not data.get("next_cursor"):
                return ids
            cursor = data["next_cursor"]

    # ------------------------------------------------------------------ #
    # Blocks                                                               #
    # ------------------------------------------------------------------ #

    def list_child_blocks(self, block_id: str) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"page_size": PAGE_SIZE}
            if cursor:
                params["start_cursor"] = cursor
            data = self._request("GET", f"blocks/{block_id}/children", params=params)
            blocks.extend(data.get("results") or [])
            if not data.get("has_more") or not data.get("next_cursor"):
                return blocks
            cursor = data["next_cursor"]

    def append_child_blocks(self, block_id: str, children: list[dict[str, Any]]) -> None:
        self._request("PATCH", f"blocks/{block_id}/children", json_body={"children": children})
