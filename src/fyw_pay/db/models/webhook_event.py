"""
Webhook event log - dedup ledger for gateway notifications
"""
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from ..base import Base, JSONType, utcnow


class WebhookEvent(Base):
    """Append-only record of every accepted gateway notification"""
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String(128), nullable=False, index=True)
    reference = Column(String(64), nullable=False, index=True)
    provider = Column(String(20), nullable=False)
    event = Column(String(64), nullable=False)
    processed_at = Column(DateTime, default=utcnow, nullable=False)
    raw_payload = Column(JSONType, nullable=False)

    # The insert-time collision on this key is the authoritative duplicate check
    __table_args__ = (
        UniqueConstraint("event_id", "reference", name="uq_webhook_events_event_reference"),
    )

    def __repr__(self):
        return f"<WebhookEvent {self.event_id} {self.reference}>"
