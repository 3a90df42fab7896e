# subscription_webhook/core/supabase.py
from __future__ import annotations

import inspect

from supabase import create_client, Client

from subscription_webhook.core.config import WebhookSettings

# ClientOptions exists in some versions, but the signature differs by version.
try:
    from supabase import ClientOptions  # type: ignore
except ImportError:
    ClientOptions = None  # type: ignore


def _normalize_supabase_url(url: str) -> str:
    # create_client wants the base project url without a trailing slash.
    return (url or "").strip().rstrip("/")


def _looks_like_jwt(value: str) -> bool:
    v = (value or "").strip()
    return v.startswith("eyJ") and v.count(".") >= 2


def _build_options_if_supported():
    """
    Creates ClientOptions only when available and only with params supported by this version.
    """
    if ClientOptions is None:
        return None

    try:
        params = set(inspect.signature(ClientOptions.__init__).parameters.keys())
    except (TypeError, ValueError):
        return None

    kwargs = {}
    if "schema" in params:
        kwargs["schema"] = "public"
    # Server-side service role client: no browser session to keep around.
    if "persist_session" in params:
        kwargs["persist_session"] = False
    if "auto_refresh_token" in params:
        kwargs["auto_refresh_token"] = False

    if not kwargs:
        return None

    return ClientOptions(**kwargs)  # type: ignore


def create_supabase_client(settings: WebhookSettings) -> Client:
    """
    Builds the service-role client used for profile lookups and subscription upserts.
    Called once by the application lifespan; the caller owns the returned client.
    """
    url = _normalize_supabase_url(settings.supabase_url)
    key = (settings.supabase_service_role_key or "").strip()

    if not url:
        raise RuntimeError("SUPABASE_URL is missing")
    if not key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY is missing")
    if not _looks_like_jwt(key):
        raise RuntimeError(
            "SUPABASE_SERVICE_ROLE_KEY does not look like a Supabase JWT (expected something starting with 'eyJ...'). "
            "Use the service_role key from Supabase Dashboard → Project Settings → API."
        )

    opts = _build_options_if_supported()
    if opts is not None:
        return create_client(url, key, options=opts)  # type: ignore
    return create_client(url, key)
