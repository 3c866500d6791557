from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class WebhookLog(Base):
    """One inbound webhook request and how it was handled."""

    __tablename__ = "webhook_logs"

    request_id: Mapped[str] = mapped_column(String, primary_key=True)
    endpoint: Mapped[str] = mapped_column(String, nullable=False)  # "notion" or "todoist"
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    event_type: Mapped[str | None] = mapped_column(String, nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String, nullable=True)
    has_signature: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    was_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    skip_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "requestId": self.request_id,
            "endpoint": self.endpoint,
            "receivedAt": self.received_at.isoformat() if self.received_at else None,
            "eventType": self.event_type,
            "entityId": self.entity_id,
            "userAgent": self.user_agent,
            "hasSignature": self.has_signature,
            "payload": self.payload,
            "processing": {
                "success": self.success,
                "wasProcessed": self.was_processed,
                "skipReason": self.skip_reason,
                "error": self.error,
                "duration": self.duration_ms,
            },
        }
