from __future__ import annotations

import base64
import hashlib
import hmac

from subscription_webhook.core.errors import InvalidSignature

SHOPIFY_HMAC_HEADER = "x-shopify-hmac-sha256"


def compute_shopify_hmac(body: bytes, secret: str) -> str:
    """
    Shopify signs the exact raw body: base64(HMAC-SHA256(secret, body)).
    """
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def is_valid_shopify_hmac(body: bytes, signature: str | None, secret: str) -> bool:
    if not signature or not secret:
        return False
    expected = compute_shopify_hmac(body, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8"))


def verify_shopify_hmac(body: bytes, signature: str | None, secret: str) -> None:
    if not is_valid_shopify_hmac(body, signature, secret):
        raise InvalidSignature("missing header" if not signature else "digest mismatch")
