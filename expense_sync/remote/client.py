"""
HTTP client for the remote expense service.

Thin accessor over three endpoints, scoped to one owner:

    GET    {api_url}/expenses/{owner}
    POST   {api_url}/expenses
    DELETE {api_url}/expenses/{identity}

No retries, batching or pagination here. The sync engine decides when
to call again.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aiohttp

from ..config import SyncConfig
from ..exceptions import RejectedError, ServerError, UnreachableError
from ..logging_utils import get_sync_logger
from ..records import Expense

logger = get_sync_logger("remote")

# Statuses meaning the service understood the request and refused the payload
REJECTED_STATUSES = frozenset({400, 409, 422})


class RemoteClient:
    """Client for one owner's expense collection on the remote service.

    Example:
        >>> async with RemoteClient("http://localhost:5000/api", "user123") as remote:
        ...     expenses = await remote.list_all()
    """

    def __init__(
        self,
        api_url: str,
        owner_id: str,
        request_timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the remote client.

        Args:
            api_url: Base URL of the expense API
            owner_id: Owner whose collection this client reads and writes
            request_timeout: Total timeout per request in seconds
            session: Optional shared aiohttp session (not closed by this client)
        """
        self.api_url = api_url.rstrip("/")
        self.owner_id = owner_id
        self.request_timeout = request_timeout
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: SyncConfig) -> RemoteClient:
        return cls(config.api_url, config.owner_id, config.request_timeout)

    async def __aenter__(self) -> RemoteClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def list_all(self) -> list[Expense]:
        """Fetch the owner's full expense list.

        Raises:
            UnreachableError: No network path to the service
            ServerError: Service failed or returned an unusable body
        """
        data = await self._request("GET", f"/expenses/{self.owner_id}")
        if not isinstance(data, list):
            raise ServerError(self._url(f"/expenses/{self.owner_id}"), body="expected a JSON array")
        try:
            return [Expense.from_remote(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise ServerError(self._url(f"/expenses/{self.owner_id}"), body=str(e)) from e

    async def create(self, expense: Expense) -> Expense:
        """Create an expense remotely and return the confirmed record.

        Raises:
            UnreachableError: No network path to the service
            ServerError: Service failed or returned an unusable body
            RejectedError: Service refused the payload
        """
        payload = expense.to_payload(self.owner_id)
        data = await self._request("POST", "/expenses", payload)
        if not isinstance(data, dict):
            raise ServerError(self._url("/expenses"), body="expected a JSON object")
        try:
            confirmed = Expense.from_remote(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ServerError(self._url("/expenses"), body=str(e)) from e
        logger.debug(f"Remote created expense {confirmed.remote_id} (local {expense.local_id})")
        return confirmed

    async def delete(self, identity: str) -> None:
        """Delete an expense by its remote identity.

        Raises:
            UnreachableError: No network path to the service
            ServerError: Service failed
        """
        await self._request("DELETE", f"/expenses/{identity}")
        logger.debug(f"Remote deleted expense {identity}")

    async def ping(self) -> bool:
        """Check whether the service answers at all.

        Any HTTP response counts as reachable, including error statuses.
        """
        session = self._ensure_session()
        try:
            async with session.head(self.api_url, allow_redirects=True):
                return True
        except (aiohttp.ClientError, asyncio.TimeoutError):
            return False

    def _url(self, path: str) -> str:
        return f"{self.api_url}{path}"

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = self._url(path)
        session = self._ensure_session()
        try:
            async with session.request(method, url, json=payload) as response:
                body = await response.text()
                if response.status in REJECTED_STATUSES:
                    raise RejectedError(url, response.status, body)
                if response.status >= 400:
                    raise ServerError(url, response.status, body)
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise UnreachableError(url, e) from e
        except aiohttp.ClientError as e:
            raise ServerError(url, body=str(e)) from e

        if not body.strip():
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ServerError(url, response.status, body) from e
