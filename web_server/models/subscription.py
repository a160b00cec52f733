from typing import Optional

from pydantic import BaseModel

from db import get_db


class Subscription(BaseModel):
    """Subscription record as written by the payment processor's webhook."""
    customer_id: str
    subscription_id: Optional[str] = None
    subscription_status: str
    price_id: Optional[str] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    payment_method_brand: Optional[str] = None
    payment_method_last4: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.subscription_status == "active"


class SubscriptionStatus(BaseModel):
    uid: str
    is_premium: bool
    subscription: Optional[Subscription] = None


async def get_user_subscription(uid: str) -> Optional[Subscription]:
    db = get_db()
    doc = await db.user_subscriptions.find_one({"uid": uid}, {"_id": 0, "uid": 0})
    if doc is None:
        return None
    return Subscription(**doc)


async def get_subscription_status(uid: str) -> SubscriptionStatus:
    subscription = await get_user_subscription(uid)
    return SubscriptionStatus(
        uid=uid,
        is_premium=subscription is not None and subscription.is_active,
        subscription=subscription,
    )
