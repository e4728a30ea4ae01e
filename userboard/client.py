"""HTTP client for the userboard JSON API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional

import httpx

from .actions import handle_errors
from .models import User


class UserboardAPIError(RuntimeError):
    """Raised when the API cannot be reached or answers unexpectedly."""


@dataclass
class _ClientConfig:
    base_url: str
    timeout: float
    transport: Optional[httpx.AsyncBaseTransport] = None


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    return cleaned.rstrip("/")


def _build_endpoint(base_url: str, path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return f"{base_url}{path}"


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


def _serialize_values(values: Mapping[str, object]) -> dict:
    payload = dict(values)
    if "is_paid" in payload:
        payload["isPaid"] = payload.pop("is_paid")
    return payload


class RemoteUserActions:
    """Invoke the mutation actions of a running service over HTTP.

    Mirrors :class:`userboard.actions.UserActions`: every call returns ``None``
    on success or an error string, including for transport failures.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = _ClientConfig(
            base_url=_normalize_base_url(base_url),
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def _client(self) -> httpx.AsyncClient:
        if self._config.transport is not None:
            return httpx.AsyncClient(timeout=self._config.timeout, transport=self._config.transport)
        return httpx.AsyncClient(timeout=self._config.timeout)

    async def _request(self, method: str, path: str, *, json: Optional[dict] = None) -> Optional[str]:
        url = _build_endpoint(self._config.base_url, path)
        try:
            async with self._client() as client:
                response = await client.request(method, url, json=json)
        except httpx.RequestError as exc:
            return f"Failed to contact userboard API: {exc}"

        try:
            parsed = response.json()
        except ValueError:
            parsed = None

        if response.status_code >= 400:
            default = f"Userboard API request failed with status {response.status_code}"
            return _extract_error_message(parsed, default)

        if not isinstance(parsed, dict):
            return "Userboard API returned an unexpected response payload"
        error = parsed.get("error")
        if error is None:
            return None
        return handle_errors(parsed)

    async def create_user_action(self, values: Mapping[str, object]) -> Optional[str]:
        return await self._request("POST", "/users", json=_serialize_values(values))

    async def update_user_action(self, values: Mapping[str, object]) -> Optional[str]:
        payload = _serialize_values(values)
        user_id = str(payload.pop("id", "") or "")
        if not user_id:
            return "Id is required"
        return await self._request("PATCH", f"/users/{user_id}", json=payload)

    async def delete_user_action(self, user_id: str) -> Optional[str]:
        if not user_id:
            return "Id is required"
        return await self._request("DELETE", f"/users/{user_id}")

    async def fetch_users(self) -> List[User]:
        """Return the full user collection from ``GET /users``."""

        url = _build_endpoint(self._config.base_url, "/users")
        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.RequestError as exc:
            raise UserboardAPIError(f"Failed to contact userboard API: {exc}") from exc

        if response.status_code >= 400:
            raise UserboardAPIError(
                f"Userboard API request failed with status {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UserboardAPIError("Userboard API returned an invalid response") from exc

        if not isinstance(data, dict) or not isinstance(data.get("users"), list):
            raise UserboardAPIError("Userboard API returned an unexpected response payload")

        try:
            return [User.from_dict(item) for item in data["users"]]
        except (TypeError, ValueError, AttributeError) as exc:
            raise UserboardAPIError("Userboard API response was missing required fields") from exc


__all__ = ["RemoteUserActions", "UserboardAPIError"]
