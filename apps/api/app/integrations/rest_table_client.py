from collections.abc import Sequence
from datetime import datetime
from typing import Any

import httpx

from app.integrations.errors import (
    RemoteStoreBadResponseError,
    RemoteStoreTimeoutError,
    RemoteStoreUnavailableError,
)
from app.services.remote_store import Filter


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _encode_row(row: dict[str, Any]) -> dict[str, Any]:
    return {key: _encode_value(value) for key, value in row.items()}


def _filter_param(item: Filter) -> tuple[str, str]:
    if item.op == "in":
        joined = ",".join(str(_encode_value(value)) for value in item.value)
        return item.column, f"in.({joined})"
    return item.column, f"{item.op}.{_encode_value(item.value)}"


class RestTableClient:
    """Table store backed by a PostgREST-style hosted backend."""

    service = "rest"

    def __init__(self, base_url: str, api_key: str, timeout_s: float) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        if not self.base_url:
            raise RemoteStoreUnavailableError(self.service, "Remote URL is not configured")

        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.request(
                    method,
                    f"{self.base_url}/rest/v1/{table}",
                    params=params,
                    json=json,
                    headers=self._headers(),
                )
        except httpx.TimeoutException as err:
            raise RemoteStoreTimeoutError(self.service) from err
        except httpx.TransportError as err:
            raise RemoteStoreUnavailableError(self.service, str(err)) from err

        if response.status_code >= 500:
            raise RemoteStoreUnavailableError(self.service, "Remote store returned 5xx")
        if response.status_code >= 400:
            raise RemoteStoreBadResponseError(
                self.service,
                f"Remote store returned {response.status_code}",
            )
        return response

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        params = [("select", "*")]
        params.extend(_filter_param(item) for item in filters)
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))

        response = self._request("GET", table, params=params)
        try:
            payload = response.json()
        except ValueError as err:
            raise RemoteStoreBadResponseError(
                self.service, "Remote store returned malformed payload"
            ) from err
        if not isinstance(payload, list):
            raise RemoteStoreBadResponseError(self.service, "Remote store returned malformed payload")
        return payload

    def insert(self, table: str, row: dict[str, Any]) -> None:
        self._request("POST", table, json=[_encode_row(row)])

    def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        self._request("PATCH", table, params=[("id", f"eq.{row_id}")], json=_encode_row(values))

    def delete(self, table: str, row_id: str) -> None:
        self._request("DELETE", table, params=[("id", f"eq.{row_id}")])

    def ping(self) -> None:
        self._request("GET", "users", params=[("select", "id"), ("limit", "1")])
