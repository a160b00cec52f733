import logging
import os
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CheckoutMode(str, Enum):
    payment = "payment"
    subscription = "subscription"


class Product(BaseModel):
    id: str
    price_id: str
    name: str
    description: str
    mode: CheckoutMode


PRODUCTS: list[Product] = [
    Product(
        id="prod_SaRfmx3OoUFoMm",
        price_id="price_1RfYGl2MVaVwI7TVzfvaSbV9",
        name="StartupPro Plan",
        description="Unlock premium startup features",
        mode=CheckoutMode.subscription,
    ),
]


def get_product_by_price_id(price_id: str) -> Optional[Product]:
    return next((p for p in PRODUCTS if p.price_id == price_id), None)


def get_product_by_id(product_id: str) -> Optional[Product]:
    return next((p for p in PRODUCTS if p.id == product_id), None)


# ── Checkout session ─────────────────────────────────────────────────────

class CheckoutRequest(BaseModel):
    """Body of POST /users/{uid}/checkout."""
    price_id: str
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutSession(BaseModel):
    session_id: str
    url: str


class UnknownProduct(Exception):
    pass


class CheckoutError(Exception):
    """The hosted checkout endpoint refused or failed to create a session."""


async def create_checkout_session(uid: str, request: CheckoutRequest) -> CheckoutSession:
    """Ask the hosted checkout function for a session the client can redirect to."""
    product = get_product_by_price_id(request.price_id)
    if product is None:
        raise UnknownProduct(request.price_id)

    checkout_url = os.getenv("CHECKOUT_URL")
    if not checkout_url:
        raise CheckoutError("Checkout is not configured")

    base_url = os.getenv("APP_BASE_URL", "http://localhost:5173").rstrip("/")
    headers = {"Content-Type": "application/json"}
    api_key = os.getenv("CHECKOUT_API_KEY")
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(
                checkout_url,
                headers=headers,
                json={
                    "uid": uid,
                    "price_id": product.price_id,
                    "mode": product.mode.value,
                    "success_url": request.success_url or f"{base_url}/success",
                    "cancel_url": request.cancel_url or f"{base_url}/cancel",
                },
            )
    except httpx.HTTPError as e:
        logger.error("Checkout request failed: %s", e)
        raise CheckoutError("Failed to create checkout session") from e

    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}

    if not resp.is_success:
        logger.error("Checkout endpoint returned %s: %s", resp.status_code, resp.text[:200])
        raise CheckoutError(body.get("error") or "Failed to create checkout session")

    session_id, url = body.get("sessionId"), body.get("url")
    if not session_id or not url:
        logger.error("Checkout endpoint returned no session: %s", resp.text[:200])
        raise CheckoutError(body.get("error") or "Checkout endpoint returned no session")
    return CheckoutSession(session_id=session_id, url=url)
