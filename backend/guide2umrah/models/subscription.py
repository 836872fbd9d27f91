"""
Guide2Umrah Backend: Email Subscription Model
===============================================

What:  Addresses collected by the "keep me posted" form on the site.
Who:   SubscriptionService.

The unique constraint on `email` is the only deduplication; the service
lowercases and trims before insert so the constraint sees normalized values.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from guide2umrah.database import Base


class Subscription(Base):
    __tablename__ = "email_subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
    )

    subscription_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(email='{self.email}')>"
