from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Protocol

from supabase import Client

from subscription_webhook.core.errors import PersistenceError, UserNotFound
from subscription_webhook.schemas.shopify import ParsedOrder
from subscription_webhook.services.automation import identify_automation

ACTIVE_STATUS = "active"
SUBSCRIPTION_CONFLICT_KEY = "user_id,automation_slug"


def _log(*args):
    ts = datetime.now(timezone.utc).isoformat()
    print(f"[subscriptions] {ts}", *args)


class SubscriptionStoreError(Exception):
    pass


class UserLookupError(SubscriptionStoreError):
    pass


class SubscriptionWriteError(SubscriptionStoreError):
    pass


@dataclass(frozen=True)
class SubscriptionRecord:
    user_id: str
    automation_slug: str
    plan_name: str
    status: str
    started_at: str
    shopify_order_id: str | None = None

    def as_row(self) -> dict[str, Any]:
        return asdict(self)


class SubscriptionStore(Protocol):
    def find_user_id_by_email(self, email: str) -> str | None: ...

    def upsert_subscription(self, record: SubscriptionRecord) -> None: ...


class SupabaseSubscriptionStore:
    """
    profiles / subscriptions access through the service-role client.
    The upsert is a single `insert ... on conflict (user_id, automation_slug) do update`
    on the Postgres side, so concurrent deliveries cannot create duplicates.
    """

    def __init__(self, client: Client, profiles_table: str = "profiles", subscriptions_table: str = "subscriptions"):
        self.client = client
        self.profiles_table = profiles_table
        self.subscriptions_table = subscriptions_table

    def find_user_id_by_email(self, email: str) -> str | None:
        try:
            resp = (
                self.client.table(self.profiles_table)
                .select("id")
                .eq("email", email)
                .limit(2)
                .execute()
            )
        except Exception as e:
            raise UserLookupError(f"{type(e).__name__}: {str(e)}") from e

        rows = resp.data or []
        if not rows:
            return None
        if len(rows) > 1:
            raise UserLookupError(f"multiple profiles share email {email}")
        return str(rows[0]["id"])

    def upsert_subscription(self, record: SubscriptionRecord) -> None:
        try:
            (
                self.client.table(self.subscriptions_table)
                .upsert(record.as_row(), on_conflict=SUBSCRIPTION_CONFLICT_KEY)
                .execute()
            )
        except Exception as e:
            raise SubscriptionWriteError(f"{type(e).__name__}: {str(e)}") from e


def build_subscription_record(
    user_id: str,
    order: ParsedOrder,
    now: datetime | None = None,
) -> SubscriptionRecord:
    started = now or datetime.now(timezone.utc)
    return SubscriptionRecord(
        user_id=str(user_id),
        automation_slug=identify_automation(order.line_item_title),
        plan_name=order.line_item_title,
        status=ACTIVE_STATUS,
        started_at=started.isoformat(),
        shopify_order_id=order.order_id,
    )


def record_subscription(
    store: SubscriptionStore,
    order: ParsedOrder,
    now: datetime | None = None,
) -> SubscriptionRecord:
    """
    Resolves the purchaser and upserts their subscription.

    A missing profile and a failed lookup both surface as UserNotFound (404);
    only the log tells them apart. A failed write surfaces as PersistenceError.
    """
    if not order.email:
        _log("order has no customer email; cannot resolve user", "order", order.order_id)
        raise UserNotFound("missing email")

    try:
        user_id = store.find_user_id_by_email(order.email)
    except UserLookupError as e:
        _log("user lookup failed for email:", order.email, str(e))
        raise UserNotFound("lookup error") from e

    if not user_id:
        _log("user not found for email:", order.email)
        raise UserNotFound("no profile")

    record = build_subscription_record(user_id, order, now=now)

    try:
        store.upsert_subscription(record)
    except SubscriptionWriteError as e:
        _log("error saving subscription:", "user", user_id, "slug", record.automation_slug, str(e))
        raise PersistenceError(str(e)) from e

    _log(
        "subscription saved",
        "user", user_id,
        "slug", record.automation_slug,
        "plan", record.plan_name,
        "order", record.shopify_order_id,
    )
    return record
