import pytest
from fastapi.testclient import TestClient

from subscription_webhook.api.routes.shopify_webhooks import get_subscription_store
from subscription_webhook.core.config import WebhookSettings, get_settings
from subscription_webhook.main import app
from subscription_webhook.services.subscriptions import SubscriptionWriteError, UserLookupError

TEST_SECRET = "shpss_test_secret"


class FakeSubscriptionStore:
    """In-memory stand-in keyed on (user_id, automation_slug), like the real unique constraint."""

    def __init__(self, users=None):
        self.users = dict(users or {})
        self.rows = {}
        self.lookups = []
        self.upserts = []
        self.fail_lookup = False
        self.fail_write = False

    def find_user_id_by_email(self, email):
        self.lookups.append(email)
        if self.fail_lookup:
            raise UserLookupError("connection reset")
        return self.users.get(email)

    def upsert_subscription(self, record):
        self.upserts.append(record)
        if self.fail_write:
            raise SubscriptionWriteError("relation \"subscriptions\" does not exist")
        self.rows[(record.user_id, record.automation_slug)] = record.as_row()


@pytest.fixture
def store():
    return FakeSubscriptionStore(users={"a@x.com": "U1"})


@pytest.fixture
def settings():
    return WebhookSettings(
        supabase_url="https://example.supabase.co",
        supabase_service_role_key="eyJhbGciOi.test.key",
        shopify_webhook_secret=TEST_SECRET,
    )


@pytest.fixture
def client(store, settings):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_subscription_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
