from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class WebhookSettings:
    """
    Runtime configuration for the Shopify webhook receiver.
    Uses env vars:
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY
      - SHOPIFY_WEBHOOK_SECRET (falls back to SHOPIFY_API_SECRET)
      - PROFILES_TABLE (optional)
      - SUBSCRIPTIONS_TABLE (optional)
    """

    supabase_url: str
    supabase_service_role_key: str
    shopify_webhook_secret: str
    profiles_table: str = "profiles"
    subscriptions_table: str = "subscriptions"

    @staticmethod
    def from_env() -> "WebhookSettings":
        load_dotenv()

        url = (os.getenv("SUPABASE_URL") or "").strip().rstrip("/")
        key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
        secret = (
            (os.getenv("SHOPIFY_WEBHOOK_SECRET") or "").strip()
            or (os.getenv("SHOPIFY_API_SECRET") or "").strip()
        )
        profiles = (os.getenv("PROFILES_TABLE") or "profiles").strip() or "profiles"
        subscriptions = (os.getenv("SUBSCRIPTIONS_TABLE") or "subscriptions").strip() or "subscriptions"

        if not url:
            raise RuntimeError("SUPABASE_URL is missing")
        if not key:
            raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY is missing")
        if not secret:
            raise RuntimeError("SHOPIFY_WEBHOOK_SECRET (or SHOPIFY_API_SECRET) is missing")

        return WebhookSettings(
            supabase_url=url,
            supabase_service_role_key=key,
            shopify_webhook_secret=secret,
            profiles_table=profiles,
            subscriptions_table=subscriptions,
        )


@lru_cache(maxsize=1)
def get_settings() -> WebhookSettings:
    return WebhookSettings.from_env()
