"""Status vocabulary shared by orders and quotations, and the translators
between the backend's coarse enums and the unified dashboard statuses."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from .errors import ValidationError


class SourceKind(str, Enum):
    ORDER = "order"
    QUOTATION = "quotation"


class OrderStatus(str, Enum):
    QUOTE_REQUESTED = "quote_requested"
    QUOTE_SENT = "quote_sent"
    NEGOTIATION = "negotiation"
    ORDER_BOOKED = "order_booked"
    REJECTED = "rejected"
    PAYMENT_PENDING = "payment_pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    # Only reachable through the order pass-through of unknown backend codes.
    PACKED = "packed"
    COMPLETED = "completed"
    RETURNED = "returned"
    REFUNDED = "refunded"
    ON_HOLD = "on_hold"


class QuotationBackendStatus(str, Enum):
    PENDING = "PENDING"
    QUOTE_SENT = "QUOTE_SENT"
    NEGOTIATING = "NEGOTIATING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class OrderBackendStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


QUOTATION_TO_UNIFIED: Mapping[str, str] = MappingProxyType(
    {
        QuotationBackendStatus.PENDING.value: OrderStatus.QUOTE_REQUESTED.value,
        QuotationBackendStatus.QUOTE_SENT.value: OrderStatus.QUOTE_SENT.value,
        QuotationBackendStatus.NEGOTIATING.value: OrderStatus.NEGOTIATION.value,
        QuotationBackendStatus.ACCEPTED.value: OrderStatus.ORDER_BOOKED.value,
        QuotationBackendStatus.REJECTED.value: OrderStatus.REJECTED.value,
    }
)

ORDER_TO_UNIFIED: Mapping[str, str] = MappingProxyType(
    {
        OrderBackendStatus.PENDING.value: OrderStatus.PAYMENT_PENDING.value,
        OrderBackendStatus.CONFIRMED.value: OrderStatus.CONFIRMED.value,
        OrderBackendStatus.PAID.value: OrderStatus.PAID.value,
        OrderBackendStatus.PROCESSING.value: OrderStatus.PROCESSING.value,
        OrderBackendStatus.SHIPPED.value: OrderStatus.SHIPPED.value,
        OrderBackendStatus.DELIVERED.value: OrderStatus.DELIVERED.value,
        OrderBackendStatus.CANCELLED.value: OrderStatus.CANCELLED.value,
    }
)

UNIFIED_TO_QUOTATION: Mapping[str, str] = MappingProxyType(
    {unified: raw for raw, unified in QUOTATION_TO_UNIFIED.items()}
)

# Stage names the dashboard submits for orders that the backend spells differently.
ORDER_STAGE_SUBMISSION: Mapping[str, str] = MappingProxyType(
    {
        OrderStatus.PROCESSING.value: OrderBackendStatus.PAID.value,
        OrderStatus.SHIPPED.value: OrderBackendStatus.SHIPPED.value,
        OrderStatus.DELIVERED.value: OrderBackendStatus.DELIVERED.value,
        OrderStatus.COMPLETED.value: OrderBackendStatus.DELIVERED.value,
    }
)

QUOTATION_STATUSES: FrozenSet[str] = frozenset(QUOTATION_TO_UNIFIED.values())
ORDER_STATUSES: FrozenSet[str] = frozenset(ORDER_TO_UNIFIED.values())

TERMINAL_STATUSES: FrozenSet[str] = frozenset(
    {OrderStatus.REJECTED.value, OrderStatus.CANCELLED.value, OrderStatus.DELIVERED.value}
)

REJECTION_STATUSES: FrozenSet[str] = frozenset(
    {
        OrderStatus.CANCELLED.value,
        OrderStatus.REJECTED.value,
        OrderStatus.RETURNED.value,
        OrderStatus.REFUNDED.value,
    }
)

INITIAL_STATUS: Mapping[SourceKind, str] = MappingProxyType(
    {
        SourceKind.QUOTATION: OrderStatus.QUOTE_REQUESTED.value,
        SourceKind.ORDER: OrderStatus.PAYMENT_PENDING.value,
    }
)

STATUS_LABELS: Mapping[str, str] = MappingProxyType(
    {
        OrderStatus.QUOTE_REQUESTED.value: "Quote Requested",
        OrderStatus.QUOTE_SENT.value: "Quote Sent",
        OrderStatus.NEGOTIATION.value: "Negotiation",
        OrderStatus.ORDER_BOOKED.value: "Order Booked",
        OrderStatus.CONFIRMED.value: "Confirmed",
        OrderStatus.PAYMENT_PENDING.value: "Payment Pending",
        OrderStatus.PAID.value: "Paid",
        OrderStatus.PROCESSING.value: "Processing",
        OrderStatus.PACKED.value: "Packed",
        OrderStatus.SHIPPED.value: "Shipment Booked",
        OrderStatus.DELIVERED.value: "Delivered",
        OrderStatus.COMPLETED.value: "Completed",
        OrderStatus.CANCELLED.value: "Cancelled",
        OrderStatus.REJECTED.value: "Rejected",
        OrderStatus.RETURNED.value: "Returned",
        OrderStatus.REFUNDED.value: "Refunded",
        OrderStatus.ON_HOLD.value: "On Hold",
    }
)


def to_unified_status(raw_status: Optional[str], source_kind: SourceKind) -> str:
    """Translate a backend status code; total over every input.

    Unknown quotation codes fall back to ``quote_requested``; unknown order
    codes pass through lower-cased.
    """
    raw = raw_status if isinstance(raw_status, str) else ""
    if source_kind == SourceKind.QUOTATION:
        return QUOTATION_TO_UNIFIED.get(raw, OrderStatus.QUOTE_REQUESTED.value)
    return ORDER_TO_UNIFIED.get(raw, raw.lower())


def to_quotation_backend_status(status: str) -> str:
    try:
        return UNIFIED_TO_QUOTATION[_value(status)]
    except KeyError as exc:
        raise ValidationError(f"No quotation backend status for {status!r}") from exc


def to_order_backend_status(status: str) -> str:
    value = _value(status)
    return ORDER_STAGE_SUBMISSION.get(value, value.upper())


def status_label(status: str) -> str:
    value = _value(status)
    return STATUS_LABELS.get(value, value.replace("_", " ").title())


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)
