"""Remote submission store clients.

The remote store owns the authoritative ``status`` of every submission. Two
backends are provided:

- ``SqlSubmissionStore`` talks to the service's own database through
  SQLAlchemy, running blocking calls in a worker thread.
- ``SupabaseSubmissionStore`` talks to a hosted PostgREST endpoint over
  httpx, where row-level security may deny updates.

Both expose the same coroutine interface (``SubmissionStore``) and raise the
exceptions from ``circle_hub.services.errors``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Protocol

import httpx
from pydantic import ValidationError
from sqlalchemy.exc import ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import Session

from circle_hub.core.settings import settings
from circle_hub.db.session import SessionLocal
from circle_hub.repositories.submission_repo import SubmissionRepository
from circle_hub.schemas.submission import Submission, SubmissionStatus
from circle_hub.services.errors import RemoteStoreError, RemoteWriteDenied

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_BAD_REQUEST = 400


class SubmissionStore(Protocol):
    """Interface of the authoritative submission table."""

    async def get(self, submission_id: str) -> Submission | None: ...

    async def list_all(self) -> list[Submission]: ...

    async def list_by_status(self, status: SubmissionStatus) -> list[Submission]: ...

    async def create(self, fields: Mapping[str, Any]) -> Submission: ...

    async def update_status(
        self,
        submission_id: str,
        *,
        status: SubmissionStatus,
        reviewed_at: datetime,
        notes: str | None = None,
    ) -> Submission: ...

    async def delete(self, submission_id: str) -> bool: ...


def _parse_sql_id(submission_id: str) -> int | None:
    try:
        return int(submission_id)
    except (TypeError, ValueError):
        return None


class SqlSubmissionStore:
    """Submission store backed by the local SQLAlchemy database."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def get(self, submission_id: str) -> Submission | None:
        return await asyncio.to_thread(self._get, submission_id)

    async def list_all(self) -> list[Submission]:
        return await asyncio.to_thread(self._list, None)

    async def list_by_status(self, status: SubmissionStatus) -> list[Submission]:
        return await asyncio.to_thread(self._list, status)

    async def create(self, fields: Mapping[str, Any]) -> Submission:
        return await asyncio.to_thread(self._create, dict(fields))

    async def update_status(
        self,
        submission_id: str,
        *,
        status: SubmissionStatus,
        reviewed_at: datetime,
        notes: str | None = None,
    ) -> Submission:
        return await asyncio.to_thread(
            self._update_status, submission_id, status, reviewed_at, notes
        )

    async def delete(self, submission_id: str) -> bool:
        return await asyncio.to_thread(self._delete, submission_id)

    def _get(self, submission_id: str) -> Submission | None:
        key = _parse_sql_id(submission_id)
        if key is None:
            return None
        try:
            with self._session_factory() as db:
                row = SubmissionRepository(db).get_by_id(key)
                return Submission.model_validate(row) if row else None
        except SQLAlchemyError as exc:
            raise RemoteStoreError(f"Submission lookup failed: {exc}") from exc

    def _list(self, status: SubmissionStatus | None) -> list[Submission]:
        try:
            with self._session_factory() as db:
                repo = SubmissionRepository(db)
                rows = repo.list_all() if status is None else repo.list_by_status(status.value)
                return [Submission.model_validate(row) for row in rows]
        except SQLAlchemyError as exc:
            raise RemoteStoreError(f"Submission listing failed: {exc}") from exc

    def _create(self, fields: dict[str, Any]) -> Submission:
        try:
            with self._session_factory() as db:
                row = SubmissionRepository(db).create(fields)
                db.commit()
                db.refresh(row)
                return Submission.model_validate(row)
        except SQLAlchemyError as exc:
            raise RemoteStoreError(f"Submission insert failed: {exc}") from exc

    def _update_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        reviewed_at: datetime,
        notes: str | None,
    ) -> Submission:
        key = _parse_sql_id(submission_id)
        if key is None:
            raise RemoteWriteDenied(f"Update matched no rows for submission {submission_id}")
        with self._session_factory() as db:
            try:
                row = SubmissionRepository(db).update_status(
                    key, status=status.value, reviewed_at=reviewed_at, notes=notes
                )
                if row is None:
                    raise RemoteWriteDenied(
                        f"Update matched no rows for submission {submission_id}"
                    )
                db.commit()
                db.refresh(row)
                return Submission.model_validate(row)
            except ProgrammingError as exc:
                # Permission errors surface as ProgrammingError on PostgreSQL.
                db.rollback()
                raise RemoteWriteDenied(f"Status update rejected: {exc}") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                raise RemoteStoreError(f"Status update failed: {exc}") from exc

    def _delete(self, submission_id: str) -> bool:
        key = _parse_sql_id(submission_id)
        if key is None:
            return False
        with self._session_factory() as db:
            try:
                deleted = SubmissionRepository(db).delete(key)
                db.commit()
                return deleted
            except SQLAlchemyError as exc:
                db.rollback()
                raise RemoteStoreError(f"Submission delete failed: {exc}") from exc


class SupabaseSubmissionStore:
    """Submission store backed by a hosted PostgREST table."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        table: str = "community_subs",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") + "/rest/v1"
        self._api_key = api_key
        self._table = table
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=httpx.Timeout(self._timeout_seconds),
                    headers={
                        "apikey": self._api_key,
                        "Authorization": f"Bearer {self._api_key}",
                    },
                    transport=self._transport,
                )
        return self._client

    async def _request(
        self,
        method: str,
        *,
        params: Mapping[str, str],
        json_data: Any | None = None,
        representation: bool = False,
    ) -> httpx.Response:
        client = await self._ensure_client()
        headers = {"Prefer": "return=representation"} if representation else None
        try:
            return await client.request(
                method, f"/{self._table}", params=params, json=json_data, headers=headers
            )
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Remote store request failed: {exc}") from exc

    @staticmethod
    def _rows(response: httpx.Response, action: str) -> list[Submission]:
        if response.status_code >= HTTP_BAD_REQUEST:
            raise RemoteStoreError(
                f"Remote store responded with {response.status_code} when {action}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteStoreError(f"Unreadable remote payload when {action}") from exc
        if not isinstance(payload, list):
            raise RemoteStoreError(f"Unexpected remote payload when {action}")
        try:
            return [Submission.model_validate(row) for row in payload]
        except ValidationError as exc:
            raise RemoteStoreError(f"Malformed remote row when {action}: {exc}") from exc

    async def get(self, submission_id: str) -> Submission | None:
        response = await self._request(
            "GET", params={"id": f"eq.{submission_id}", "select": "*"}
        )
        rows = self._rows(response, "reading a submission")
        return rows[0] if rows else None

    async def list_all(self) -> list[Submission]:
        response = await self._request(
            "GET", params={"select": "*", "order": "created_at.desc"}
        )
        return self._rows(response, "listing submissions")

    async def list_by_status(self, status: SubmissionStatus) -> list[Submission]:
        response = await self._request(
            "GET",
            params={
                "select": "*",
                "status": f"eq.{status.value}",
                "order": "created_at.desc",
            },
        )
        return self._rows(response, "listing submissions by status")

    async def create(self, fields: Mapping[str, Any]) -> Submission:
        response = await self._request(
            "POST", params={"select": "*"}, json_data=[dict(fields)], representation=True
        )
        rows = self._rows(response, "creating a submission")
        if not rows:
            raise RemoteWriteDenied("Insert returned no rows")
        return rows[0]

    async def update_status(
        self,
        submission_id: str,
        *,
        status: SubmissionStatus,
        reviewed_at: datetime,
        notes: str | None = None,
    ) -> Submission:
        update: dict[str, Any] = {
            "status": status.value,
            "reviewed_at": reviewed_at.isoformat(),
        }
        if notes:
            update["review_notes"] = notes
        response = await self._request(
            "PATCH",
            params={"id": f"eq.{submission_id}", "select": "*"},
            json_data=update,
            representation=True,
        )
        if response.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            raise RemoteWriteDenied(
                f"Remote store refused update ({response.status_code}): {response.text}"
            )
        rows = self._rows(response, "updating a submission")
        if not rows:
            # Row-level security filters the row out of the update instead of failing.
            raise RemoteWriteDenied(f"Update matched no rows for submission {submission_id}")
        return rows[0]

    async def delete(self, submission_id: str) -> bool:
        response = await self._request(
            "DELETE",
            params={"id": f"eq.{submission_id}", "select": "id"},
            representation=True,
        )
        if response.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            raise RemoteWriteDenied(f"Remote store refused delete ({response.status_code})")
        if response.status_code >= HTTP_BAD_REQUEST:
            raise RemoteStoreError(f"Remote store responded with {response.status_code}")
        try:
            return bool(response.json())
        except ValueError as exc:
            raise RemoteStoreError("Unreadable remote payload when deleting a submission") from exc

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _SubmissionStoreSingleton:
    """Singleton wrapper for the configured submission store."""

    _instance: SubmissionStore | None = None

    @classmethod
    def get_instance(cls) -> SubmissionStore:
        if cls._instance is None:
            if settings.supabase_enabled:
                cls._instance = SupabaseSubmissionStore(
                    settings.supabase_url or "",
                    settings.supabase_key or "",
                    table=settings.supabase_submissions_table,
                    timeout_seconds=settings.remote_timeout_seconds,
                )
            else:
                if settings.remote_backend == "supabase":
                    logger.warning(
                        "REMOTE_BACKEND=supabase but SUPABASE_URL/SUPABASE_KEY missing; "
                        "falling back to the SQL store"
                    )
                cls._instance = SqlSubmissionStore()
        return cls._instance


def get_submission_store() -> SubmissionStore:
    """Return the configured submission store."""
    return _SubmissionStoreSingleton.get_instance()
