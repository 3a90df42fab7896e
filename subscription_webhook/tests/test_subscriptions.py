from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from subscription_webhook.core.errors import PersistenceError, UserNotFound
from subscription_webhook.schemas.shopify import ParsedOrder
from subscription_webhook.services.subscriptions import (
    SubscriptionRecord,
    SubscriptionWriteError,
    SupabaseSubscriptionStore,
    UserLookupError,
    record_subscription,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_record_subscription_upserts_expected_row(store):
    order = ParsedOrder(email="a@x.com", line_item_title="Calendar Pro", order_id="42")
    record = record_subscription(store, order, now=NOW)

    assert store.lookups == ["a@x.com"]
    assert record.as_row() == {
        "user_id": "U1",
        "automation_slug": "calendar_agent",
        "plan_name": "Calendar Pro",
        "status": "active",
        "started_at": NOW.isoformat(),
        "shopify_order_id": "42",
    }
    assert store.rows[("U1", "calendar_agent")] == record.as_row()


def test_same_user_and_slug_keeps_one_row_with_latest_write(store):
    record_subscription(store, ParsedOrder("a@x.com", "Calendar Basic", "1"), now=NOW)
    record_subscription(store, ParsedOrder("a@x.com", "Calendar Pro", "2"), now=NOW)

    assert len(store.rows) == 1
    assert store.rows[("U1", "calendar_agent")]["plan_name"] == "Calendar Pro"
    assert store.rows[("U1", "calendar_agent")]["shopify_order_id"] == "2"


def test_different_slugs_are_separate_rows(store):
    record_subscription(store, ParsedOrder("a@x.com", "Calendar Pro", "1"))
    record_subscription(store, ParsedOrder("a@x.com", "Vera", "2"))
    assert set(store.rows) == {("U1", "calendar_agent"), ("U1", "vera")}


def test_unknown_user_raises_and_skips_upsert(store):
    with pytest.raises(UserNotFound):
        record_subscription(store, ParsedOrder("nobody@x.com", "Vera", "9"))
    assert store.upserts == []


def test_lookup_error_is_reported_as_not_found(store):
    store.fail_lookup = True
    with pytest.raises(UserNotFound) as exc:
        record_subscription(store, ParsedOrder("a@x.com", "Vera", "9"))
    assert exc.value.status_code == 404
    assert store.upserts == []


def test_missing_email_never_queries_store(store):
    with pytest.raises(UserNotFound):
        record_subscription(store, ParsedOrder(None, "Vera", "9"))
    assert store.lookups == []


def test_write_failure_raises_persistence_error(store):
    store.fail_write = True
    with pytest.raises(PersistenceError) as exc:
        record_subscription(store, ParsedOrder("a@x.com", "Rebeq", "3"))
    assert exc.value.status_code == 500
    assert exc.value.message == "Database error"


# -----------------------------
# Supabase-backed store
# -----------------------------
def _client_returning(data):
    client = MagicMock()
    client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = MagicMock(
        data=data
    )
    return client


def test_supabase_store_finds_single_profile():
    client = _client_returning([{"id": "U1"}])
    store = SupabaseSubscriptionStore(client)

    assert store.find_user_id_by_email("a@x.com") == "U1"
    client.table.assert_called_with("profiles")
    client.table.return_value.select.assert_called_with("id")
    client.table.return_value.select.return_value.eq.assert_called_with("email", "a@x.com")


def test_supabase_store_no_profile():
    assert SupabaseSubscriptionStore(_client_returning([])).find_user_id_by_email("a@x.com") is None


def test_supabase_store_ambiguous_profile_is_lookup_error():
    store = SupabaseSubscriptionStore(_client_returning([{"id": "U1"}, {"id": "U2"}]))
    with pytest.raises(UserLookupError):
        store.find_user_id_by_email("a@x.com")


def test_supabase_store_query_failure_is_lookup_error():
    client = MagicMock()
    client.table.side_effect = ConnectionError("refused")
    with pytest.raises(UserLookupError):
        SupabaseSubscriptionStore(client).find_user_id_by_email("a@x.com")


def test_supabase_store_upsert_uses_conflict_key():
    client = MagicMock()
    store = SupabaseSubscriptionStore(client, subscriptions_table="subs")
    record = SubscriptionRecord("U1", "vera", "Vera", "active", NOW.isoformat(), "42")

    store.upsert_subscription(record)

    client.table.assert_called_with("subs")
    client.table.return_value.upsert.assert_called_once_with(
        record.as_row(), on_conflict="user_id,automation_slug"
    )
    client.table.return_value.upsert.return_value.execute.assert_called_once()


def test_supabase_store_upsert_failure_is_write_error():
    client = MagicMock()
    client.table.return_value.upsert.return_value.execute.side_effect = RuntimeError("duplicate key")
    with pytest.raises(SubscriptionWriteError):
        SupabaseSubscriptionStore(client).upsert_subscription(
            SubscriptionRecord("U1", "vera", "Vera", "active", NOW.isoformat())
        )
