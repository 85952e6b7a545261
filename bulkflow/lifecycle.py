"""Negotiation state machine between the customer and the admin.

Turn inference and action preconditions are pure functions of
``(source_kind, status)``. The ``plan_*`` helpers turn an action into the
``TransitionRequest`` that ``LifecycleService`` submits to the backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, List, Mapping, Optional

from .domain import Actor, LifecycleAction, QuotedProduct, TransitionRequest, UnifiedOrderEntity
from .errors import InvalidTransitionError, ValidationError
from .statuses import (
    TERMINAL_STATUSES,
    OrderStatus,
    SourceKind,
    to_order_backend_status,
    to_quotation_backend_status,
)

ADMIN_TURN_STATUSES: FrozenSet[str] = frozenset({OrderStatus.QUOTE_REQUESTED.value, OrderStatus.NEGOTIATION.value})
CUSTOMER_TURN_STATUSES: FrozenSet[str] = frozenset({OrderStatus.QUOTE_SENT.value})


@dataclass(frozen=True)
class Transition:
    action: LifecycleAction
    source_kind: SourceKind
    actor: Actor
    # None admits any non-terminal status, including codes outside the known vocabulary.
    allowed_from: Optional[FrozenSet[str]]
    result_status: Optional[str]

    def admits(self, status: str) -> bool:
        if self.allowed_from is None:
            return not is_terminal(status)
        return status in self.allowed_from


# Admin may answer a counter-offer once; there is no customer-initiated
# negotiation -> quote_sent round trip.
TRANSITIONS: Mapping[LifecycleAction, Transition] = MappingProxyType(
    {
        LifecycleAction.SEND_QUOTE: Transition(
            LifecycleAction.SEND_QUOTE,
            SourceKind.QUOTATION,
            Actor.ADMIN,
            ADMIN_TURN_STATUSES,
            OrderStatus.QUOTE_SENT.value,
        ),
        LifecycleAction.ACCEPT_COUNTER: Transition(
            LifecycleAction.ACCEPT_COUNTER,
            SourceKind.QUOTATION,
            Actor.ADMIN,
            frozenset({OrderStatus.NEGOTIATION.value}),
            OrderStatus.ORDER_BOOKED.value,
        ),
        LifecycleAction.REJECT_COUNTER: Transition(
            LifecycleAction.REJECT_COUNTER,
            SourceKind.QUOTATION,
            Actor.ADMIN,
            frozenset({OrderStatus.NEGOTIATION.value}),
            OrderStatus.REJECTED.value,
        ),
        LifecycleAction.ACCEPT_QUOTE_REQUEST: Transition(
            LifecycleAction.ACCEPT_QUOTE_REQUEST,
            SourceKind.QUOTATION,
            Actor.ADMIN,
            frozenset({OrderStatus.QUOTE_REQUESTED.value}),
            OrderStatus.ORDER_BOOKED.value,
        ),
        LifecycleAction.REJECT_QUOTE_REQUEST: Transition(
            LifecycleAction.REJECT_QUOTE_REQUEST,
            SourceKind.QUOTATION,
            Actor.ADMIN,
            frozenset({OrderStatus.QUOTE_REQUESTED.value}),
            OrderStatus.REJECTED.value,
        ),
        LifecycleAction.UPDATE_ORDER_STATUS: Transition(
            LifecycleAction.UPDATE_ORDER_STATUS,
            SourceKind.ORDER,
            Actor.NONE,
            None,
            None,
        ),
    }
)


def whose_turn(source_kind: SourceKind, status: str) -> Actor:
    if source_kind != SourceKind.QUOTATION:
        return Actor.NONE
    if status in ADMIN_TURN_STATUSES:
        return Actor.ADMIN
    if status in CUSTOMER_TURN_STATUSES:
        return Actor.CUSTOMER
    return Actor.NONE


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_perform(entity: UnifiedOrderEntity, action: LifecycleAction) -> bool:
    transition = TRANSITIONS[action]
    if entity.source_kind != transition.source_kind:
        return False
    return transition.admits(entity.status) and whose_turn(entity.source_kind, entity.status) == transition.actor


def available_actions(entity: UnifiedOrderEntity) -> List[LifecycleAction]:
    return [action for action in TRANSITIONS if can_perform(entity, action)]


def ensure_allowed(entity: UnifiedOrderEntity, action: LifecycleAction) -> Transition:
    if not can_perform(entity, action):
        raise InvalidTransitionError(action.value, entity.status, entity.source_kind.value)
    return TRANSITIONS[action]


def plan_send_quote(
    entity: UnifiedOrderEntity,
    prices: Mapping[str, float],
    notes: Optional[str] = None,
) -> TransitionRequest:
    transition = ensure_allowed(entity, LifecycleAction.SEND_QUOTE)
    products = [
        QuotedProduct(
            product_id=item.product_id,
            quantity=item.quantity,
            target_price=_target_price(item),
            quoted_price=prices.get(item.product_id, item.effective_price),
        )
        for item in entity.line_items
    ]
    return TransitionRequest(
        action=transition.action,
        source_kind=SourceKind.QUOTATION,
        target_id=entity.id,
        backend_status=to_quotation_backend_status(transition.result_status),
        products=products,
        notes=notes,
    )


def plan_accept(entity: UnifiedOrderEntity, action: LifecycleAction) -> TransitionRequest:
    """Book the quotation at the customer's own target prices."""
    if action not in (LifecycleAction.ACCEPT_COUNTER, LifecycleAction.ACCEPT_QUOTE_REQUEST):
        raise ValidationError(f"{action.value} is not an accept action")
    transition = ensure_allowed(entity, action)
    products = [
        QuotedProduct(
            product_id=item.product_id,
            quantity=item.quantity,
            target_price=_target_price(item),
            quoted_price=_target_price(item),
        )
        for item in entity.line_items
    ]
    return TransitionRequest(
        action=action,
        source_kind=SourceKind.QUOTATION,
        target_id=entity.id,
        backend_status=to_quotation_backend_status(transition.result_status),
        products=products,
    )


def plan_reject(
    entity: UnifiedOrderEntity,
    action: LifecycleAction,
    reason: Optional[str] = None,
) -> TransitionRequest:
    if action not in (LifecycleAction.REJECT_COUNTER, LifecycleAction.REJECT_QUOTE_REQUEST):
        raise ValidationError(f"{action.value} is not a reject action")
    transition = ensure_allowed(entity, action)
    return TransitionRequest(
        action=action,
        source_kind=SourceKind.QUOTATION,
        target_id=entity.id,
        backend_status=to_quotation_backend_status(transition.result_status),
        notes=reason or None,
    )


def plan_update_order_status(
    entity: UnifiedOrderEntity,
    status: str,
    note: Optional[str] = None,
) -> TransitionRequest:
    transition = ensure_allowed(entity, LifecycleAction.UPDATE_ORDER_STATUS)
    if not status.strip():
        raise ValidationError("Status is required")
    return TransitionRequest(
        action=transition.action,
        source_kind=SourceKind.ORDER,
        target_id=entity.submission_ref(),
        backend_status=to_order_backend_status(status.strip().lower()),
        notes=note or None,
    )


def _target_price(item) -> float:
    return item.target_price if item.target_price is not None else item.unit_price
