"""
Guide2Umrah Backend: Subscription Route Handlers
==================================================

What:  POST /api/subscriptions (landing page form) and
       GET /api/subscriptions (dashboard list, bearer token required).
How:   The signup is stored first; the confirmation mail is queued as a
       background task and a delivery failure only reaches the logs.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from guide2umrah.database import get_db_session
from guide2umrah.dependencies import get_current_user
from guide2umrah.exceptions import EmailDeliveryError
from guide2umrah.models.user import User
from guide2umrah.schemas.common import ErrorResponse
from guide2umrah.schemas.subscription import (
    SubscriptionListResponse,
    SubscriptionRequest,
    SubscriptionResult,
)
from guide2umrah.services.email_service import email_service
from guide2umrah.services.subscription_service import SUBSCRIBED, subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Subscriptions"])


async def send_confirmation(recipient: str) -> None:
    """Background task body. Never raises: the signup already succeeded."""
    try:
        await email_service.send_confirmation_email(recipient)
    except EmailDeliveryError as e:
        logger.error("Confirmation mail not delivered: %s | Context: %s", e.message, e.context)


@router.post(
    "/subscriptions",
    status_code=201,
    response_model=SubscriptionResult,
    responses={
        400: {"description": "Invalid email address", "model": ErrorResponse},
        409: {"description": "Address already subscribed", "model": ErrorResponse},
    },
    summary="Subscribe to launch news",
)
async def subscribe(
    body: SubscriptionRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> SubscriptionResult:
    subscription = await subscription_service.subscribe(db, body.email)
    background_tasks.add_task(send_confirmation, subscription.email)
    return SubscriptionResult(success=True, message=SUBSCRIBED)


@router.get(
    "/subscriptions",
    response_model=SubscriptionListResponse,
    responses={401: {"description": "Missing or invalid bearer token", "model": ErrorResponse}},
    summary="List subscribers, newest first",
)
async def list_subscriptions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SubscriptionListResponse:
    return await subscription_service.list(db)
