"""
Guide2Umrah Backend: Subscription Service
===========================================

What:  The "keep me posted" email list behind the landing page form.
How:   Normalize (trim + lowercase) → format check → insert. The unique
       constraint on email_subscriptions.email is the final word on duplicates.
Who:   The subscriptions router. Sending the confirmation mail is the
       router's job (background task), so a mail outage never loses a signup.
"""

import logging
import re
from typing import List

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from guide2umrah.exceptions import ConflictError, DatabaseError, ValidationError
from guide2umrah.models.subscription import Subscription
from guide2umrah.schemas.subscription import SubscriptionItem, SubscriptionListResponse

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INVALID_EMAIL = "Voer een geldig e-mailadres in."
ALREADY_SUBSCRIBED = "Dit e-mailadres is al geregistreerd."
SUBSCRIBED = "Bedankt voor je inschrijving! We houden je op de hoogte."


def normalize_subscription_email(email: str) -> str:
    return (email or "").strip().lower()


class SubscriptionService:

    async def subscribe(self, db: AsyncSession, email: str) -> Subscription:
        """
        Add an address to the list.

        Raises:
            ValidationError: empty or malformed address (→ 400)
            ConflictError: address already on the list (→ 409)
        """
        normalized = normalize_subscription_email(email)
        if not normalized or not EMAIL_PATTERN.match(normalized):
            raise ValidationError(message=INVALID_EMAIL, field="email")

        try:
            existing = await db.execute(
                select(Subscription.id).where(Subscription.email == normalized)
            )
            if existing.first() is not None:
                raise ConflictError(message=ALREADY_SUBSCRIBED)

            subscription = Subscription(email=normalized)
            db.add(subscription)
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same address
            await db.rollback()
            raise ConflictError(message=ALREADY_SUBSCRIBED)
        except SQLAlchemyError as e:
            logger.error("Failed to store subscription: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("New subscription %s", subscription.id)
        return subscription

    async def list(self, db: AsyncSession) -> SubscriptionListResponse:
        """Newest first, for the dashboard."""
        try:
            result = await db.execute(
                select(Subscription).order_by(desc(Subscription.subscription_date))
            )
            rows: List[Subscription] = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing subscriptions: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        return SubscriptionListResponse(
            subscriptions=[SubscriptionItem.model_validate(row) for row in rows],
            total_count=len(rows),
        )


subscription_service = SubscriptionService()
