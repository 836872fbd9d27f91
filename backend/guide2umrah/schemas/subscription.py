"""
Guide2Umrah Backend: Subscription Schemas
===========================================

What:  Bodies of the marketing email list endpoints.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class SubscriptionRequest(BaseModel):
    # Format is checked by SubscriptionService so the error stays a Dutch 400
    email: str = Field(default="", max_length=320)


class SubscriptionResult(BaseModel):
    """Shape the landing page form already understands."""
    success: bool
    message: str


class SubscriptionItem(BaseModel):
    id: uuid.UUID
    email: str
    subscription_date: datetime

    model_config = {"from_attributes": True}


class SubscriptionListResponse(BaseModel):
    subscriptions: List[SubscriptionItem]
    total_count: int
