"""SQLAlchemy models for the email and push delivery queues."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declared_attr

from app.infrastructure.database import Base
from app.utils import utcnow


class QueueEntryColumns:
    """Columns shared by every channel queue."""

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    priority = Column(String(10), nullable=False, default="medium")
    retry_count = Column(Integer, nullable=False, default=0)
    scheduled_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    last_error = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    @declared_attr
    def notification_id(cls):
        return Column(
            Integer,
            ForeignKey("notification.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    @declared_attr
    def recipient_id(cls):
        return Column(Integer, ForeignKey("user.id"), nullable=False, index=True)


class EmailQueueModel(QueueEntryColumns, Base):
    """Pending and historical email deliveries."""

    __tablename__ = "email_queue"
    __table_args__ = (
        UniqueConstraint("notification_id", "recipient_id", name="uq_email_queue_recipient"),
    )

    to_address = Column(String(255), nullable=False)


class PushQueueModel(QueueEntryColumns, Base):
    """Pending and historical push deliveries, one per subscription."""

    __tablename__ = "push_queue"
    __table_args__ = (
        UniqueConstraint(
            "notification_id", "subscription_id", name="uq_push_queue_subscription"
        ),
    )

    subscription_id = Column(
        Integer, ForeignKey("push_subscription.id"), nullable=False, index=True
    )


__all__ = ["EmailQueueModel", "PushQueueModel", "QueueEntryColumns"]
