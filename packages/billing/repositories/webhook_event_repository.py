"""
Repository for the webhook event ledger.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
from sqlalchemy import and_, delete, or_, select, update

from common.core.config import settings
from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import get_logger, trace_span
from packages.billing.models.database.webhook_event import WebhookEventEntity
from packages.billing.models.domain.webhook_event import WebhookEvent
from packages.billing.models.domain.enums import WebhookEventStatus

logger = get_logger(__name__)


class WebhookEventRepository(BaseRepository[WebhookEventEntity, WebhookEvent]):
    """Records each Stripe event once and tracks its reconciliation progress."""

    def __init__(self, db_session=None):
        super().__init__(WebhookEventEntity, WebhookEvent, db_session)

    @trace_span
    async def get_by_event_id(self, event_id: str) -> Optional[WebhookEvent]:
        async def _get():
            async with self._get_session() as session:
                result = await session.execute(
                    select(WebhookEventEntity).where(
                        WebhookEventEntity.event_id == event_id
                    )
                )
                entity = result.scalar_one_or_none()
                return self._entity_to_domain(entity) if entity else None

        return await self._run("get webhook_events", _get())

    def _reclaimable(self, stale_before: datetime):
        """Failed rows, and processing rows whose claim has outlived the lease."""
        return or_(
            WebhookEventEntity.status == WebhookEventStatus.FAILED.value,
            and_(
                WebhookEventEntity.status == WebhookEventStatus.PROCESSING.value,
                WebhookEventEntity.claimed_at < stale_before,
            ),
        )

    def _stale_before(self, lease_seconds: Optional[float]) -> datetime:
        if lease_seconds is None:
            lease_seconds = settings.webhook_processing_lease_seconds
        return datetime.now(timezone.utc) - timedelta(seconds=lease_seconds)

    @trace_span
    async def claim(
        self,
        event_id: str,
        event_type: str,
        customer_id: Optional[str],
        payload: dict[str, Any],
        lease_seconds: Optional[float] = None,
    ) -> Optional[WebhookEvent]:
        """
        Take ownership of an event for processing.

        Returns the ledger row when this caller should process the event, or
        None when it is already settled or held by a live claim. A failed
        event, or one whose claim is older than the lease, is reclaimed with
        its completed steps intact.
        """
        stale_before = self._stale_before(lease_seconds)

        async def _claim():
            async with self._get_session() as session:
                now = datetime.now(timezone.utc)
                inserted = await session.execute(
                    self._insert(session)
                    .values(
                        event_id=event_id,
                        event_type=event_type,
                        customer_id=customer_id,
                        status=WebhookEventStatus.PROCESSING.value,
                        completed_steps=[],
                        payload=payload,
                        attempts=1,
                        claimed_at=now,
                    )
                    .on_conflict_do_nothing(index_elements=["event_id"])
                )
                if inserted.rowcount != 1:
                    reclaimed = await session.execute(
                        update(WebhookEventEntity)
                        .where(
                            WebhookEventEntity.event_id == event_id,
                            self._reclaimable(stale_before),
                        )
                        .values(
                            status=WebhookEventStatus.PROCESSING.value,
                            attempts=WebhookEventEntity.attempts + 1,
                            claimed_at=now,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if reclaimed.rowcount != 1:
                        return None

                result = await session.execute(
                    select(WebhookEventEntity).where(
                        WebhookEventEntity.event_id == event_id
                    )
                )
                return self._entity_to_domain(result.scalar_one())

        return await self._run("claim webhook_events", _claim())

    @trace_span
    async def record_step(self, event_id: str, step: str) -> None:
        """Append a completed side effect to the event's step list."""

        async def _record():
            async with self._get_session() as session:
                result = await session.execute(
                    select(WebhookEventEntity).where(
                        WebhookEventEntity.event_id == event_id
                    )
                )
                entity = result.scalar_one()
                if step not in (entity.completed_steps or []):
                    # Reassign so the JSON column is flagged dirty
                    entity.completed_steps = [*(entity.completed_steps or []), step]
                await session.flush()

        await self._run("record step webhook_events", _record())

    @trace_span
    async def mark(
        self,
        event_id: str,
        status: WebhookEventStatus,
        error: Optional[str] = None,
    ) -> None:
        async def _mark():
            async with self._get_session() as session:
                await session.execute(
                    update(WebhookEventEntity)
                    .where(WebhookEventEntity.event_id == event_id)
                    .values(status=status.value, error=error)
                )

        await self._run("mark webhook_events", _mark())

    @trace_span
    async def list_retryable(
        self, limit: int = 100, lease_seconds: Optional[float] = None
    ) -> List[WebhookEvent]:
        """Failed events plus processing events abandoned past their lease."""
        stale_before = self._stale_before(lease_seconds)

        async def _list():
            async with self._get_session() as session:
                result = await session.execute(
                    select(WebhookEventEntity)
                    .where(self._reclaimable(stale_before))
                    .order_by(WebhookEventEntity.received_at)
                    .limit(limit)
                )
                return self._entities_to_domain(result.scalars().all())

        return await self._run("list retryable webhook_events", _list())

    @trace_span
    async def purge_received_before(self, cutoff: datetime) -> int:
        """Delete ledger rows received before the cutoff. Returns rows deleted."""

        async def _purge():
            async with self._get_session() as session:
                result = await session.execute(
                    delete(WebhookEventEntity).where(
                        WebhookEventEntity.received_at < cutoff
                    )
                )
                return result.rowcount

        deleted = await self._run("purge webhook_events", _purge())
        logger.info(
            f"Purged {deleted} webhook events received before {cutoff.isoformat()}",
            extra={"deleted": deleted},
        )
        return deleted
