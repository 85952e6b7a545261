from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional

from .clock import Clock
from .domain import (
    ActionsView,
    DetailsUpdateInput,
    EntityLookup,
    EntityQuery,
    FeedStats,
    LifecycleAction,
    OrderCreate,
    RejectInput,
    SendQuoteInput,
    StatusUpdateInput,
    TransitionRequest,
    UnifiedOrderEntity,
)
from .errors import LookupNotFoundError, NotFoundError, TransportError, ValidationError
from .lifecycle import (
    available_actions,
    plan_accept,
    plan_reject,
    plan_send_quote,
    plan_update_order_status,
    whose_turn,
)
from .logging import ServiceLogger
from .normalizer import DEFAULT_CURRENCY, normalize_order, normalize_orders, normalize_quotation, normalize_quotations
from .statuses import OrderBackendStatus, OrderStatus, SourceKind
from .transport import OrderTransport

INACTIVE_STATUSES = frozenset({OrderStatus.CANCELLED.value, OrderStatus.REJECTED.value})
UNVALUED_STATUSES = frozenset({OrderStatus.RETURNED.value, OrderStatus.REFUNDED.value})
PENDING_STATUSES = frozenset(
    {
        OrderStatus.QUOTE_REQUESTED.value,
        OrderStatus.QUOTE_SENT.value,
        OrderStatus.NEGOTIATION.value,
        OrderStatus.CONFIRMED.value,
        OrderStatus.PAYMENT_PENDING.value,
    }
)
PROCESSING_STATUSES = frozenset(
    {
        OrderStatus.PROCESSING.value,
        OrderStatus.PACKED.value,
        OrderStatus.ORDER_BOOKED.value,
        OrderStatus.PAID.value,
    }
)
COMPLETED_STATUSES = frozenset({OrderStatus.DELIVERED.value, OrderStatus.COMPLETED.value})


class OrderFeedService:
    """Read side: one reverse-chronological feed over orders and quotations."""

    def __init__(self, transport: OrderTransport, clock: Clock, default_currency: str = DEFAULT_CURRENCY) -> None:
        self._transport = transport
        self._clock = clock
        self._currency = default_currency
        self._log = ServiceLogger("feed")

    async def list_orders(self) -> List[UnifiedOrderEntity]:
        """Orders only; an unreadable collection degrades to an empty list."""
        try:
            raws = await self._transport.fetch_orders()
        except TransportError as exc:
            self._log.warning("Order list unavailable", error=exc.detail, status_code=exc.status_code)
            return []
        return normalize_orders(raws, self._currency)

    async def list_quotations(self) -> List[UnifiedOrderEntity]:
        """Quotations only; an unreadable collection degrades to an empty list."""
        try:
            raws = await self._transport.fetch_quotations()
        except TransportError as exc:
            self._log.warning("Quotation list unavailable", error=exc.detail, status_code=exc.status_code)
            return []
        return normalize_quotations(raws, self._currency)

    async def list_unified(self) -> List[UnifiedOrderEntity]:
        """Both collections, most recently updated first. Any fetch failure propagates."""
        try:
            raw_orders, raw_quotations = await asyncio.gather(
                self._transport.fetch_orders(),
                self._transport.fetch_quotations(),
            )
        except TransportError as exc:
            exc.action = exc.action or "list_unified"
            self._log.error("Unified feed unavailable", error=exc.detail, status_code=exc.status_code)
            raise
        merged = normalize_orders(raw_orders, self._currency) + normalize_quotations(raw_quotations, self._currency)
        # sorted() stays stable with reverse=True, so ties keep fetch order.
        ordered = sorted(merged, key=lambda entity: entity.updated_at, reverse=True)
        self._log.debug("Unified feed loaded", orders=len(raw_orders), quotations=len(raw_quotations))
        return ordered

    async def query(self, query: EntityQuery) -> List[UnifiedOrderEntity]:
        entities = await self.list_unified()
        if query.kind:
            entities = [entity for entity in entities if entity.source_kind == query.kind]
        if query.status:
            entities = [entity for entity in entities if entity.status == query.status]
        return entities

    async def locate(self, ref: str) -> Optional[UnifiedOrderEntity]:
        for entity in await self.list_unified():
            if entity.matches(ref):
                return entity
        return None

    async def get_entity(self, lookup: EntityLookup) -> UnifiedOrderEntity:
        entity = await self.locate(lookup.ref)
        if not entity:
            raise NotFoundError()
        return entity

    async def stats(self) -> FeedStats:
        return summarize(await self.list_unified(), self._clock)


class LifecycleService:
    """Write side: submits lifecycle actions and returns freshly normalized entities.

    Entities passed in are never modified; callers replace their reference
    with the returned entity and treat previously fetched lists as stale.
    """

    def __init__(self, transport: OrderTransport, feed: OrderFeedService, default_currency: str = DEFAULT_CURRENCY) -> None:
        self._transport = transport
        self._feed = feed
        self._currency = default_currency
        self._log = ServiceLogger("lifecycle")

    async def send_quote(self, entity: UnifiedOrderEntity, payload: SendQuoteInput) -> UnifiedOrderEntity:
        return await self._submit(entity, plan_send_quote(entity, payload.prices, payload.notes))

    async def accept_counter(self, entity: UnifiedOrderEntity) -> UnifiedOrderEntity:
        return await self._submit(entity, plan_accept(entity, LifecycleAction.ACCEPT_COUNTER))

    async def reject_counter(self, entity: UnifiedOrderEntity, payload: Optional[RejectInput] = None) -> UnifiedOrderEntity:
        reason = payload.reason if payload else None
        return await self._submit(entity, plan_reject(entity, LifecycleAction.REJECT_COUNTER, reason))

    async def accept_quote_request(self, entity: UnifiedOrderEntity) -> UnifiedOrderEntity:
        return await self._submit(entity, plan_accept(entity, LifecycleAction.ACCEPT_QUOTE_REQUEST))

    async def reject_quote_request(
        self, entity: UnifiedOrderEntity, payload: Optional[RejectInput] = None
    ) -> UnifiedOrderEntity:
        reason = payload.reason if payload else None
        return await self._submit(entity, plan_reject(entity, LifecycleAction.REJECT_QUOTE_REQUEST, reason))

    async def update_order_status(self, entity: UnifiedOrderEntity, payload: StatusUpdateInput) -> UnifiedOrderEntity:
        return await self._submit(entity, plan_update_order_status(entity, payload.status, payload.note))

    async def edit_details(self, entity: UnifiedOrderEntity, payload: DetailsUpdateInput) -> UnifiedOrderEntity:
        action = "edit_details"
        values = _detail_values(entity, payload)
        try:
            if entity.source_kind == SourceKind.QUOTATION:
                raw = await self._transport.submit_quotation_update(entity.id, values)
            else:
                raw = await self._transport.submit_order_update(entity.submission_ref(), values)
            return await self._confirm(action, entity, raw)
        except TransportError as exc:
            raise self._annotated(exc, action, entity)

    async def create_order(self, payload: OrderCreate) -> UnifiedOrderEntity:
        action = "create_order"
        body: Dict[str, Any] = {
            "customerId": payload.customer_id,
            "products": [
                {"productId": line.product_id, "quantity": line.quantity, "price": line.price}
                for line in payload.products
            ],
            "totalAmount": sum(line.quantity * line.price for line in payload.products),
            "currency": payload.currency or self._currency,
            "status": OrderBackendStatus.PENDING.value,
            "notes": payload.notes,
            "shippingAddress": payload.shipping_address,
        }
        try:
            raw = await self._transport.create_order({key: value for key, value in body.items() if value is not None})
        except TransportError as exc:
            exc.action = action
            self._log.error("Order creation failed", error=exc.detail, status_code=exc.status_code)
            raise
        created = normalize_order(raw, self._currency)
        self._log.info("Order created", id=created.id, number=created.display_number)
        return created

    async def delete_order(self, entity: UnifiedOrderEntity) -> None:
        action = "delete_order"
        if entity.source_kind != SourceKind.ORDER:
            raise ValidationError("Only orders can be deleted")
        try:
            await self._transport.delete_order(entity.id)
        except TransportError as exc:
            raise self._annotated(exc, action, entity)
        self._log.info("Order deleted", id=entity.id, number=entity.display_number)

    async def _submit(self, entity: UnifiedOrderEntity, request: TransitionRequest) -> UnifiedOrderEntity:
        action = request.action.value
        log = self._log.bind(action=action, id=entity.id, number=entity.display_number)
        log.info("Submitting transition", status=entity.status, backend_status=request.backend_status)
        try:
            if request.source_kind == SourceKind.QUOTATION:
                raw = await self._transport.submit_quotation_update(request.target_id, request.quotation_fields())
            else:
                raw = await self._transport.submit_order_status(
                    request.target_id, request.backend_status, request.notes
                )
            return await self._confirm(action, entity, raw)
        except TransportError as exc:
            raise self._annotated(exc, action, entity)

    async def _confirm(self, action: str, entity: UnifiedOrderEntity, raw) -> UnifiedOrderEntity:
        if raw:
            if entity.source_kind == SourceKind.QUOTATION:
                return normalize_quotation(raw, self._currency)
            return normalize_order(raw, self._currency)

        # No record in the answer: refetch everything and find it again.
        log = self._log.bind(action=action, id=entity.id, number=entity.display_number)
        log.debug("Backend returned no record, refetching")
        refreshed = await self._feed.list_unified()
        for candidate in refreshed:
            if candidate.source_kind == entity.source_kind and (
                candidate.matches(entity.id) or candidate.matches(entity.display_number)
            ):
                return candidate
        log.error("Could not confirm transition")
        raise LookupNotFoundError(action, entity.display_number or entity.id)

    def _annotated(self, exc: TransportError, action: str, entity: UnifiedOrderEntity) -> TransportError:
        exc.action = action
        self._log.bind(action=action, id=entity.id).error(
            "Transport failure", error=exc.detail, status_code=exc.status_code
        )
        return exc


def describe_actions(entity: UnifiedOrderEntity) -> ActionsView:
    return ActionsView(
        id=entity.id,
        status=entity.status,
        turn=whose_turn(entity.source_kind, entity.status),
        actions=available_actions(entity),
    )


def summarize(entities: Iterable[UnifiedOrderEntity], clock: Clock) -> FeedStats:
    active = [entity for entity in entities if entity.status not in INACTIVE_STATUSES]
    return FeedStats(
        total=len(active),
        pending=len([entity for entity in active if entity.status in PENDING_STATUSES]),
        processing=len([entity for entity in active if entity.status in PROCESSING_STATUSES]),
        shipped=len([entity for entity in active if entity.status == OrderStatus.SHIPPED.value]),
        completed=len([entity for entity in active if entity.status in COMPLETED_STATUSES]),
        total_value=sum(entity.total_amount for entity in active if entity.status not in UNVALUED_STATUSES),
        generated_at=clock.now(),
    )


def _detail_values(entity: UnifiedOrderEntity, payload: DetailsUpdateInput) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if payload.notes is not None:
        values["notes"] = payload.notes
    if entity.source_kind == SourceKind.QUOTATION:
        if payload.shipping_cost is not None or payload.discount is not None:
            raise ValidationError("Quotations only accept notes")
    else:
        if payload.shipping_cost is not None:
            values["shippingCost"] = payload.shipping_cost
        if payload.discount is not None:
            values["discount"] = payload.discount
    if not values:
        raise ValidationError("Nothing to update")
    return values
