"""
External municipal system client and status update sync.

Status updates recorded while an external endpoint is configured start
with sync_status "pending". The sync job posts each one to the endpoint
and marks it "synced" (with the remote reference) or "failed" (with the
error message).
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.models import StatusUpdate, SyncStatus

logger = logging.getLogger(__name__)


class ExternalSyncError(Exception):
    """Raised when the external system rejects or cannot receive an update."""
    pass


class ExternalSyncNotConfiguredError(ExternalSyncError):
    """Raised when no external endpoint is configured."""
    pass


class MunicipalSyncClient:
    """Async client for the external municipal system with retry handling."""

    MAX_RETRIES = 3
    INITIAL_BACKOFF = 1  # seconds
    MAX_BACKOFF = 30  # seconds

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the external system
            api_key: Optional bearer token
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_client(self):
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "Accept": "application/json"
            }
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=30.0,
                transport=self._transport
            )

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make a request, retrying server errors, rate limits and network failures.

        Raises:
            ExternalSyncError: On 4xx responses or once retries are exhausted
        """
        await self._ensure_client()

        retries = 0
        backoff = self.INITIAL_BACKOFF

        while retries <= self.MAX_RETRIES:
            try:
                response = await self._client.request(method, endpoint, **kwargs)

                if response.status_code == 429 or 500 <= response.status_code < 600:
                    logger.warning(
                        f"External system returned {response.status_code} on {endpoint}. "
                        f"Retry {retries}/{self.MAX_RETRIES}"
                    )
                    if retries >= self.MAX_RETRIES:
                        raise ExternalSyncError(
                            f"HTTP {response.status_code} after {retries} retries"
                        )
                    await asyncio.sleep(backoff)
                    retries += 1
                    backoff = min(backoff * 2, self.MAX_BACKOFF)
                    continue

                response.raise_for_status()

                if not response.content:
                    return {}
                return response.json()

            except httpx.HTTPStatusError as e:
                logger.error(
                    f"HTTP error {e.response.status_code} on {endpoint}: {e.response.text}"
                )
                raise ExternalSyncError(
                    f"HTTP {e.response.status_code}: {e.response.text}"
                ) from e

            except httpx.RequestError as e:
                logger.error(f"Request error on {endpoint}: {e}")
                if retries >= self.MAX_RETRIES:
                    raise ExternalSyncError(
                        f"Request failed after {retries} retries: {e}"
                    ) from e
                await asyncio.sleep(backoff)
                retries += 1
                backoff = min(backoff * 2, self.MAX_BACKOFF)

        raise ExternalSyncError(f"Request failed after {self.MAX_RETRIES} retries")

    async def push_status_update(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST one status update; returns the external system's response body."""
        return await self._request("POST", "/status-updates", json=payload)


def status_update_payload(record: StatusUpdate) -> Dict[str, Any]:
    """Public fields of a status update as sent to the external system."""
    return {
        "id": str(record.id),
        "issue_id": str(record.issue_id),
        "status": record.status,
        "previous_status": record.previous_status,
        "change_type": record.change_type,
        "change_reason": record.change_reason,
        "priority": record.priority,
        "escalation_level": record.escalation_level,
        "resolution_type": record.resolution_type,
        "assigned_department_id": (
            str(record.assigned_department_id) if record.assigned_department_id else None
        ),
        "notes": record.notes if record.public_update else None,
        "created_at": record.created_at.isoformat(),
    }


class ExternalSyncService:
    """Pushes pending status updates to the external system."""

    def __init__(self, db: AsyncSession, client: MunicipalSyncClient):
        self.db = db
        self.client = client

    async def sync_pending(self, batch_size: int = 100, include_failed: bool = False) -> Dict[str, int]:
        """
        Push pending status updates, oldest first.

        Args:
            batch_size: Maximum number of records to push
            include_failed: Also retry records that failed before

        Returns:
            Dict with synced and failed counts
        """
        statuses = [SyncStatus.PENDING.value]
        if include_failed:
            statuses.append(SyncStatus.FAILED.value)

        result = await self.db.execute(
            select(StatusUpdate)
            .where(
                StatusUpdate.sync_status.in_(statuses),
                StatusUpdate.deleted_at.is_(None),
            )
            .order_by(StatusUpdate.created_at)
            .limit(batch_size)
        )
        records = result.scalars().all()

        if not records:
            logger.info("No status updates pending sync")
            return {"synced": 0, "failed": 0}

        synced = 0
        failed = 0
        for record in records:
            try:
                response = await self.client.push_status_update(status_update_payload(record))
            except ExternalSyncError as e:
                record.sync_status = SyncStatus.FAILED.value
                record.sync_error = str(e)
                failed += 1
                logger.error(f"Failed to sync status update {record.id}: {e}")
                continue

            record.sync_status = SyncStatus.SYNCED.value
            record.sync_error = None
            record.synced_at = datetime.utcnow()
            reference = response.get("reference") if isinstance(response, dict) else None
            if reference is not None:
                record.external_reference = str(reference)
            synced += 1

        logger.info(f"External sync complete: {synced} synced, {failed} failed")
        return {"synced": synced, "failed": failed}


def get_sync_client() -> MunicipalSyncClient:
    """
    Factory function to create the external system client from settings.

    Raises:
        ExternalSyncNotConfiguredError: If EXTERNAL_SYNC_URL is not set
    """
    from civic_reporter.config import settings

    if not settings.external_sync_enabled:
        raise ExternalSyncNotConfiguredError("EXTERNAL_SYNC_URL is not configured")

    return MunicipalSyncClient(
        base_url=settings.EXTERNAL_SYNC_URL,
        api_key=settings.EXTERNAL_SYNC_API_KEY
    )
