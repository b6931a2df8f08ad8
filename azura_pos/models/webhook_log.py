"""
Webhook log audit trail - every inbound POS webhook writes here before processing.
Append-only: rows are inserted by the webhook flow and never updated or deleted.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from azura_pos.database import Base

WEBHOOK_LOG_STATUSES = ("received", "success", "error", "manual_test")


class WebhookLog(Base):
    __tablename__ = "webhook_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    payload = Column(JSONB, nullable=False)
    status = Column(
        String(20), nullable=False, default="received", server_default="received", index=True
    )  # received, success, error, manual_test
    error_message = Column(Text, nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<WebhookLog {self.status}>"
