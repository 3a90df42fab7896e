from contextlib import asynccontextmanager

from fastapi import FastAPI

from subscription_webhook.api.routes import health
from subscription_webhook.api.routes import shopify_webhooks
from subscription_webhook.core.config import get_settings
from subscription_webhook.core.supabase import create_supabase_client
from subscription_webhook.services.subscriptions import SupabaseSubscriptionStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one store client per process, handed to requests through app.state
    settings = get_settings()
    client = create_supabase_client(settings)
    app.state.subscription_store = SupabaseSubscriptionStore(
        client,
        profiles_table=settings.profiles_table,
        subscriptions_table=settings.subscriptions_table,
    )
    yield
    app.state.subscription_store = None


app = FastAPI(title="Shopify Subscription Webhook", lifespan=lifespan)

app.include_router(health.router, tags=["Health"])
app.include_router(shopify_webhooks.router, tags=["Shopify Webhooks"])
