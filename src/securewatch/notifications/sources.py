"""HTTP client for the SecureWatch notification endpoints.

Two feeds are consumed:
- /api/notifications: the primary, structured notification list
- /api/dashboard/alerts: coarser dashboard alerts, used only as a fallback

Fetch failures raise TransientFetchError; failed mutations raise
MutationRejected. Callers decide whether to fall back, revert or resync.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from securewatch.errors import MutationRejected, TransientFetchError

logger = logging.getLogger(__name__)


class NotificationSource(Protocol):
    """Remote operations the engine depends on."""

    async def fetch_notifications(self, limit: int) -> List[Dict[str, Any]]:
        ...

    async def fetch_dashboard_alerts(self) -> List[Dict[str, Any]]:
        ...

    async def mark_notification_read(self, notification_id: str) -> None:
        ...

    async def mark_all_notifications_read(self) -> None:
        ...

    async def delete_notification(self, notification_id: str) -> None:
        ...


class NotificationSourceClient:
    """Async client for the notification and dashboard alert APIs.

    Example:
        client = NotificationSourceClient("http://localhost:3001")
        records = await client.fetch_notifications(limit=20)
    """

    NOTIFICATIONS_PATH = "/api/notifications"
    ALERTS_PATH = "/api/dashboard/alerts"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        auth_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            base_url: SecureWatch API base URL
            timeout: Request timeout in seconds
            auth_token: Optional bearer token
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Accept": "application/json"}
        if auth_token:
            self.headers["Authorization"] = f"Bearer {auth_token}"
        self._transport = transport
        logger.info(f"NotificationSourceClient initialized ({self.base_url})")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.headers,
            transport=self._transport,
        )

    async def _get_json(self, path: str, source: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            async with self._client() as client:
                response = await client.get(path, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise TransientFetchError(
                f"{source} returned {e.response.status_code}",
                source=source,
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise TransientFetchError(f"{source} request failed: {e}", source=source) from e

    async def _send(self, method: str, path: str, operation: str, notification_id: Optional[str] = None) -> None:
        try:
            async with self._client() as client:
                response = await client.request(method, path)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MutationRejected(
                f"{operation} returned {e.response.status_code}",
                operation=operation,
                notification_id=notification_id,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise MutationRejected(
                f"{operation} request failed: {e}",
                operation=operation,
                notification_id=notification_id,
            ) from e

    async def fetch_notifications(self, limit: int) -> List[Dict[str, Any]]:
        """Fetch the most recent notifications.

        Args:
            limit: Maximum number of records

        Returns:
            Raw notification records

        Raises:
            TransientFetchError: On transport failure, non-2xx or malformed body
        """
        data = await self._get_json(self.NOTIFICATIONS_PATH, "notifications", params={"limit": limit})
        records = data.get("notifications") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise TransientFetchError("notifications response has no list", source="notifications")
        return records

    async def fetch_dashboard_alerts(self) -> List[Dict[str, Any]]:
        """Fetch dashboard alerts (fallback feed).

        Raises:
            TransientFetchError: On transport failure, non-2xx or malformed body
        """
        data = await self._get_json(self.ALERTS_PATH, "dashboard_alerts")
        records = data.get("alerts") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise TransientFetchError("alerts response has no list", source="dashboard_alerts")
        return records

    async def mark_notification_read(self, notification_id: str) -> None:
        await self._send(
            "PUT",
            f"{self.NOTIFICATIONS_PATH}/{notification_id}/read",
            "mark_as_read",
            notification_id,
        )

    async def mark_all_notifications_read(self) -> None:
        await self._send("PUT", f"{self.NOTIFICATIONS_PATH}/read-all", "mark_all_as_read")

    async def delete_notification(self, notification_id: str) -> None:
        await self._send(
            "DELETE",
            f"{self.NOTIFICATIONS_PATH}/{notification_id}",
            "remove_notification",
            notification_id,
        )
