"""Tests for the outbound HTTP clients, served by httpx.MockTransport."""
import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

web_server_dir = Path(__file__).parent.absolute()
if str(web_server_dir) not in sys.path:
    sys.path.insert(0, str(web_server_dir))

from services.checkout import (
    PRODUCTS,
    CheckoutError,
    CheckoutRequest,
    UnknownProduct,
    create_checkout_session,
    get_product_by_id,
    get_product_by_price_id,
)
from services.narration import SpeechUnavailable, synthesize_speech

PRICE_ID = PRODUCTS[0].price_id


def serve(monkeypatch, handler) -> list[httpx.Request]:
    """Route every httpx.AsyncClient through `handler`. Returns the requests it saw."""
    seen = []
    real_client = httpx.AsyncClient

    def record(request):
        seen.append(request)
        return handler(request)

    def client(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(record), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client)
    return seen


@pytest.fixture
def checkout_env(monkeypatch):
    monkeypatch.setenv("CHECKOUT_URL", "https://pay.example.com/create-checkout")
    monkeypatch.setenv("CHECKOUT_API_KEY", "sk_test")
    monkeypatch.setenv("APP_BASE_URL", "https://ideas.example.com/")


# ── Products ─────────────────────────────────────────────────────────────

def test_product_lookups():
    product = PRODUCTS[0]
    assert get_product_by_id(product.id) is product
    assert get_product_by_price_id(product.price_id) is product
    assert get_product_by_id("prod_nope") is None


# ── Checkout ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("status", [200, 201])
def test_checkout_session_on_any_success_status(monkeypatch, checkout_env, status):
    seen = serve(monkeypatch, lambda request: httpx.Response(
        status, json={"sessionId": "cs_1", "url": "https://pay.example.com/cs_1"}
    ))

    session = asyncio.run(create_checkout_session("u1", CheckoutRequest(price_id=PRICE_ID)))

    assert session.session_id == "cs_1"
    assert session.url == "https://pay.example.com/cs_1"
    (request,) = seen
    assert request.headers["Authorization"] == "Bearer sk_test"
    assert json.loads(request.content) == {
        "uid": "u1",
        "price_id": PRICE_ID,
        "mode": "subscription",
        "success_url": "https://ideas.example.com/success",
        "cancel_url": "https://ideas.example.com/cancel",
    }


def test_checkout_passes_caller_urls(monkeypatch, checkout_env):
    seen = serve(monkeypatch, lambda request: httpx.Response(200, json={"sessionId": "cs_1", "url": "u"}))
    body = CheckoutRequest(price_id=PRICE_ID, success_url="https://x/ok", cancel_url="https://x/no")

    asyncio.run(create_checkout_session("u1", body))

    sent = json.loads(seen[0].content)
    assert sent["success_url"] == "https://x/ok"
    assert sent["cancel_url"] == "https://x/no"


def test_checkout_error_carries_upstream_message(monkeypatch, checkout_env):
    serve(monkeypatch, lambda request: httpx.Response(400, json={"error": "No such price"}))
    with pytest.raises(CheckoutError, match="No such price"):
        asyncio.run(create_checkout_session("u1", CheckoutRequest(price_id=PRICE_ID)))


def test_checkout_error_without_json_body(monkeypatch, checkout_env):
    serve(monkeypatch, lambda request: httpx.Response(500, text="<html>oops</html>"))
    with pytest.raises(CheckoutError, match="Failed to create checkout session"):
        asyncio.run(create_checkout_session("u1", CheckoutRequest(price_id=PRICE_ID)))


@pytest.mark.parametrize(
    "response, message",
    [
        (httpx.Response(200, json={"error": "boom"}), "boom"),
        (httpx.Response(200, json={"sessionId": "cs_1"}), "returned no session"),
        (httpx.Response(200, json=["cs_1"]), "returned no session"),
        (httpx.Response(200, text="not json"), "returned no session"),
    ],
)
def test_checkout_success_status_without_session(monkeypatch, checkout_env, response, message):
    serve(monkeypatch, lambda request: response)
    with pytest.raises(CheckoutError, match=message):
        asyncio.run(create_checkout_session("u1", CheckoutRequest(price_id=PRICE_ID)))


def test_checkout_network_failure(monkeypatch, checkout_env):
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    serve(monkeypatch, refuse)
    with pytest.raises(CheckoutError, match="Failed to create checkout session"):
        asyncio.run(create_checkout_session("u1", CheckoutRequest(price_id=PRICE_ID)))


def test_checkout_unknown_price_makes_no_request(monkeypatch, checkout_env):
    seen = serve(monkeypatch, lambda request: httpx.Response(200))
    with pytest.raises(UnknownProduct):
        asyncio.run(create_checkout_session("u1", CheckoutRequest(price_id="price_nope")))
    assert seen == []


# ── Speech ───────────────────────────────────────────────────────────────

def test_speech_returns_audio(monkeypatch):
    monkeypatch.setenv("ELEVENLABS_API_KEY", "xi_test")
    monkeypatch.setenv("ELEVENLABS_VOICE_ID", "voice-1")
    seen = serve(monkeypatch, lambda request: httpx.Response(200, content=b"ID3-audio"))

    assert asyncio.run(synthesize_speech("hello")) == b"ID3-audio"

    (request,) = seen
    assert request.url.path.endswith("/text-to-speech/voice-1")
    assert request.headers["xi-api-key"] == "xi_test"
    sent = json.loads(request.content)
    assert sent["text"] == "hello"
    assert sent["voice_settings"] == {"stability": 0.7, "similarity_boost": 0.8}


def test_speech_error_status(monkeypatch):
    monkeypatch.setenv("ELEVENLABS_API_KEY", "xi_test")
    serve(monkeypatch, lambda request: httpx.Response(401, json={"detail": "invalid api key"}))
    with pytest.raises(SpeechUnavailable, match="API Error: 401"):
        asyncio.run(synthesize_speech("hello"))


def test_speech_network_failure(monkeypatch):
    monkeypatch.setenv("ELEVENLABS_API_KEY", "xi_test")

    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    serve(monkeypatch, refuse)
    with pytest.raises(SpeechUnavailable, match="request failed"):
        asyncio.run(synthesize_speech("hello"))
