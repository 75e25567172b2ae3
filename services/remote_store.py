"""Client for the hosted relational store (Supabase REST / PostgREST)."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx

from core.settings import REMOTE
from services.errors import RemoteOperationError


class RemoteStore(Protocol):
    async def insert(self, table: str, record: Mapping[str, Any]) -> None: ...

    async def update(self, table: str, record_id: Any, changes: Mapping[str, Any]) -> None: ...

    async def delete(self, table: str, record_id: Any) -> None: ...


class PostgrestStore:
    """Minimal PostgREST client covering the calls the sync layer needs."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        access_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = REMOTE.timeout_sec,
        key_columns: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else REMOTE.url).rstrip("/")
        self.api_key = api_key if api_key is not None else REMOTE.anon_key
        self.access_token = access_token
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        # Tables whose primary key is not `id` (user_profiles is keyed by user_id)
        self.key_columns = dict(key_columns or {})

    # ------------------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        token = self.access_token or self.api_key
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _key_filter(self, table: str, record_id: Any) -> Dict[str, str]:
        return {self.key_columns.get(table, "id"): f"eq.{record_id}"}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        merged = self._headers()
        if headers:
            merged.update(headers)
        try:
            response = await self._client.request(method, url, params=params, json=json, headers=merged)
        except httpx.HTTPError as exc:
            raise RemoteOperationError(f"{method} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise RemoteOperationError(
                f"{method} {url} returned {response.status_code}",
                status=response.status_code,
                detail=response.text[:1000],
            )
        return response

    # ------------------------------------------------------------------
    async def insert(self, table: str, record: Mapping[str, Any]) -> None:
        await self._request(
            "POST",
            self._table_url(table),
            json=dict(record),
            headers={"Prefer": "return=minimal"},
        )

    async def upsert(self, table: str, record: Mapping[str, Any], *, on_conflict: str) -> None:
        await self._request(
            "POST",
            self._table_url(table),
            params={"on_conflict": on_conflict},
            json=dict(record),
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def update(self, table: str, record_id: Any, changes: Mapping[str, Any]) -> None:
        body = dict(changes)
        if self.key_columns.get(table, "id") != "id":
            body.pop("id", None)
        await self._request(
            "PATCH",
            self._table_url(table),
            params=self._key_filter(table, record_id),
            json=body,
            headers={"Prefer": "return=minimal"},
        )

    async def delete(self, table: str, record_id: Any) -> None:
        await self._request(
            "DELETE",
            self._table_url(table),
            params=self._key_filter(table, record_id),
            headers={"Prefer": "return=minimal"},
        )

    async def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        params = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        response = await self._request("GET", self._table_url(table), params=params)
        payload = response.json()
        if not isinstance(payload, list):
            raise RemoteOperationError(f"Unexpected payload for {table}", status=response.status_code)
        return payload

    async def health(self) -> bool:
        """Return True when the REST endpoint answers without a server error."""

        if not self.base_url:
            return False
        try:
            response = await self._client.get(f"{self.base_url}/rest/v1/", headers=self._headers())
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["PostgrestStore", "RemoteStore"]
