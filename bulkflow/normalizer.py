"""Raw backend order/quotation records -> ``UnifiedOrderEntity``.

Both normalizers are pure and total: missing or malformed fields fall back to
zero/empty values instead of raising.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union

from .domain import (
    LineItem,
    RawOrder,
    RawQuotation,
    RawStatusEvent,
    TimelineEntry,
    UnifiedOrderEntity,
)
from .statuses import SourceKind, to_unified_status

DEFAULT_CURRENCY = "INR"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

CUSTOMER_PENDING_NAME = "Loading…"
GUEST_NAME = "Guest"

RawOrderInput = Union[RawOrder, Mapping[str, Any]]
RawQuotationInput = Union[RawQuotation, Mapping[str, Any]]


def parse_timestamp(value: Optional[str]) -> datetime:
    if not value or not isinstance(value, str):
        return EPOCH
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def derive_display_number(prefix: str, record_id: str) -> str:
    return f"{prefix}-{record_id[-8:].upper()}"


def product_name(product_id: str) -> str:
    return f"Product {product_id[-6:]}" if product_id else "Product"


def customer_name(customer_id: Optional[str]) -> str:
    return CUSTOMER_PENDING_NAME if customer_id else GUEST_NAME


def normalize_order(raw: RawOrderInput, default_currency: str = DEFAULT_CURRENCY) -> UnifiedOrderEntity:
    record = _coerce(raw, RawOrder)
    status = to_unified_status(record.status, SourceKind.ORDER)
    created_at = parse_timestamp(record.created_at)
    items = [
        LineItem(
            product_id=product.product_id,
            name=product_name(product.product_id),
            quantity=product.quantity,
            unit_price=product.price,
        )
        for product in record.products
    ]
    return UnifiedOrderEntity(
        id=record.id,
        display_number=record.order_id or derive_display_number("ORD", record.id),
        backend_number=record.order_id or None,
        source_kind=SourceKind.ORDER,
        customer_id=record.customer_id or None,
        customer_name=customer_name(record.customer_id),
        line_items=items,
        total_amount=record.total_amount,
        currency=record.currency or default_currency,
        status=status,
        notes=record.notes,
        shipping_address=record.shipping_address,
        shipping_cost=record.shipping_cost or 0,
        discount=record.discount or 0,
        created_at=created_at,
        updated_at=parse_timestamp(record.updated_at),
        timeline=_timeline(record.status_history, SourceKind.ORDER, status, created_at),
    )


def normalize_quotation(raw: RawQuotationInput, default_currency: str = DEFAULT_CURRENCY) -> UnifiedOrderEntity:
    record = _coerce(raw, RawQuotation)
    status = to_unified_status(record.status, SourceKind.QUOTATION)
    created_at = parse_timestamp(record.created_at)

    target_total = sum(product.quantity * product.target_price for product in record.products)
    quoted_total = sum(
        product.quantity * (product.quoted_price if product.quoted_price is not None else product.target_price)
        for product in record.products
    )
    items = [
        LineItem(
            product_id=product.product_id,
            name=product_name(product.product_id),
            quantity=product.quantity,
            unit_price=product.quoted_price if product.quoted_price is not None else product.target_price,
            target_price=product.target_price,
            quoted_price=product.quoted_price,
        )
        for product in record.products
    ]
    return UnifiedOrderEntity(
        id=record.id,
        display_number=record.quotation_id or derive_display_number("QUO", record.id),
        backend_number=record.quotation_id or None,
        source_kind=SourceKind.QUOTATION,
        customer_id=record.customer_id or None,
        customer_name=customer_name(record.customer_id),
        line_items=items,
        total_amount=record.total_amount if record.total_amount is not None else target_total,
        quoted_total=quoted_total if quoted_total != target_total else None,
        currency=record.currency or default_currency,
        status=status,
        notes=record.notes,
        shipping_address=record.shipping_address,
        created_at=created_at,
        updated_at=parse_timestamp(record.updated_at),
        timeline=_timeline(record.status_history, SourceKind.QUOTATION, status, created_at),
    )


def normalize_orders(raws: Iterable[RawOrderInput], default_currency: str = DEFAULT_CURRENCY) -> List[UnifiedOrderEntity]:
    return [normalize_order(raw, default_currency) for raw in raws]


def normalize_quotations(
    raws: Iterable[RawQuotationInput], default_currency: str = DEFAULT_CURRENCY
) -> List[UnifiedOrderEntity]:
    return [normalize_quotation(raw, default_currency) for raw in raws]


def _coerce(raw, model):
    if isinstance(raw, model):
        return raw
    if isinstance(raw, Mapping):
        return model.model_validate(dict(raw))
    return model()


def _timeline(
    history: List[RawStatusEvent],
    source_kind: SourceKind,
    status: str,
    created_at: datetime,
) -> List[TimelineEntry]:
    if not history:
        return [TimelineEntry(status=status, timestamp=created_at)]
    return [
        TimelineEntry(
            status=to_unified_status(event.status, source_kind),
            timestamp=parse_timestamp(event.timestamp),
            note=event.note,
        )
        for event in history
    ]
