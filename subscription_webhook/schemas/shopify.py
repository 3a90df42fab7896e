from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError

from subscription_webhook.core.errors import MalformedPayload

UNKNOWN_PRODUCT_TITLE = "unknown"


class ShopifyCustomer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: str | None = None


class ShopifyLineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = None


class ShopifyOrderWebhook(BaseModel):
    """
    The slice of a Shopify `orders/*` webhook body this service reads.
    Everything else in the document is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: StrictInt | StrictStr | None = None
    email: str | None = None
    customer: ShopifyCustomer | None = None
    line_items: list[ShopifyLineItem] | None = None


@dataclass(frozen=True)
class ParsedOrder:
    email: str | None
    line_item_title: str
    order_id: str | None


def _first_present(*values: str | None) -> str | None:
    for v in values:
        if v is not None and v.strip():
            return v.strip()
    return None


def resolve_email(order: ShopifyOrderWebhook) -> str | None:
    # top-level email first, then customer.email
    customer_email = order.customer.email if order.customer else None
    return _first_present(order.email, customer_email)


def resolve_line_item_title(order: ShopifyOrderWebhook) -> str:
    if not order.line_items:
        return UNKNOWN_PRODUCT_TITLE
    # kept exactly as sent; only a blank title falls back
    title = order.line_items[0].title
    if title is None or not title.strip():
        return UNKNOWN_PRODUCT_TITLE
    return title


def parse_order(raw_body: bytes) -> ParsedOrder:
    """
    Decodes an already verified body. Anything that is not a JSON object of the
    expected shape raises MalformedPayload.
    """
    try:
        order = ShopifyOrderWebhook.model_validate_json(raw_body)
    except (ValidationError, ValueError) as e:
        raise MalformedPayload(f"{type(e).__name__}: {e}") from e

    return ParsedOrder(
        email=resolve_email(order),
        line_item_title=resolve_line_item_title(order),
        order_id=str(order.id) if order.id is not None else None,
    )
