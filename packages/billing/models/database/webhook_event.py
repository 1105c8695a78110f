"""
Database entity for received Stripe webhook events.
"""

from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, Index
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class WebhookEventEntity(Base):
    """
    Ledger of processed webhook events.

    One row per Stripe event id. Settled rows make redelivery a no-op; failed
    rows keep the payload and the side effects already applied so they can be
    replayed. A processing row whose claim is older than the lease is treated
    as abandoned and may be claimed again.
    """

    __tablename__ = "webhook_events"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    event_id = Column(String(255), nullable=False, unique=True, index=True)
    event_type = Column(String(100), nullable=False, index=True)
    customer_id = Column(String(255), nullable=True, index=True)

    status = Column(
        String(50), nullable=False, index=True
    )  # processing, completed, failed, ignored
    completed_steps = Column(JSON, nullable=False, default=list)
    error = Column(Text, nullable=True)
    payload = Column(JSON, nullable=False)
    attempts = Column(Integer, nullable=False, default=1)
    claimed_at = Column(DateTime(timezone=True), nullable=True)

    received_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (Index("idx_webhook_events_status_received", "status", "received_at"),)
