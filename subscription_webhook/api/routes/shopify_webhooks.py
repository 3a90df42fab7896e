# subscription_webhook/api/routes/shopify_webhooks.py
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from subscription_webhook.core.config import WebhookSettings, get_settings
from subscription_webhook.core.errors import MethodNotAllowed, WebhookError
from subscription_webhook.core.shopify_hmac import SHOPIFY_HMAC_HEADER, verify_shopify_hmac
from subscription_webhook.schemas.shopify import parse_order
from subscription_webhook.services.subscriptions import SubscriptionStore, record_subscription

router = APIRouter()

WEBHOOK_PATH = "/api/shopify/webhook"
SUCCESS_MESSAGE = "Subscription saved"
NON_POST_METHODS = ["GET", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD", "TRACE", "CONNECT"]


# -----------------------------
# Small logging helper
# -----------------------------
def _log(*args):
    ts = datetime.now(timezone.utc).isoformat()
    print(f"[shopify_webhook] {ts}", *args)


def _error_response(err: WebhookError) -> PlainTextResponse:
    headers = {"Allow": "POST"} if isinstance(err, MethodNotAllowed) else None
    return PlainTextResponse(err.message, status_code=err.status_code, headers=headers)


def get_subscription_store(request: Request) -> SubscriptionStore:
    store = getattr(request.app.state, "subscription_store", None)
    if store is None:
        raise RuntimeError("subscription store was not initialised by the application lifespan")
    return store


# -----------------------------
# Non-POST: rejected before any body read
# -----------------------------
@router.api_route(WEBHOOK_PATH, methods=NON_POST_METHODS)
async def shopify_webhook_wrong_method(request: Request):
    _log("rejected method", request.method)
    return _error_response(MethodNotAllowed(request.method))


# -----------------------------
# Webhook
# -----------------------------
@router.post(WEBHOOK_PATH)
async def shopify_webhook(
    request: Request,
    settings: WebhookSettings = Depends(get_settings),
    store: SubscriptionStore = Depends(get_subscription_store),
):
    # raw bytes: the HMAC is over the body exactly as Shopify sent it
    raw_body = await request.body()
    signature = request.headers.get(SHOPIFY_HMAC_HEADER)

    try:
        verify_shopify_hmac(raw_body, signature, settings.shopify_webhook_secret)
    except WebhookError as e:
        _log("invalid HMAC signature:", e.detail)
        return _error_response(e)

    _log(
        "webhook received",
        "topic:", request.headers.get("x-shopify-topic"),
        "shop:", request.headers.get("x-shopify-shop-domain"),
        "webhook_id:", request.headers.get("x-shopify-webhook-id"),
    )

    try:
        order = parse_order(raw_body)
    except WebhookError as e:
        _log("malformed payload:", e.detail)
        return _error_response(e)

    _log("order", order.order_id, "email", order.email, "title", order.line_item_title)

    try:
        await run_in_threadpool(record_subscription, store, order)
    except WebhookError as e:
        return _error_response(e)

    return PlainTextResponse(SUCCESS_MESSAGE, status_code=200)
