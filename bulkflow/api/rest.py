from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from ..container import Container
from ..deps import get_container, get_entity, get_feed_service, get_lifecycle_service
from ..domain import (
    ActionsView,
    DetailsUpdateInput,
    EntityQuery,
    FeedStats,
    HealthStatus,
    OrderCreate,
    ProgressProjection,
    RejectInput,
    SendQuoteInput,
    StatusUpdateInput,
    UnifiedOrderEntity,
)
from ..progress import project_entity
from ..services import LifecycleService, OrderFeedService, describe_actions
from ..statuses import SourceKind

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def health(container: Container = Depends(get_container)):
    return HealthStatus(
        status="ok",
        transport=container.settings.transport_mode.value,
        time=container.clock.now(),
    )


@router.get("/orders", response_model=list[UnifiedOrderEntity])
async def list_orders(
    status: Optional[str] = None,
    kind: Optional[SourceKind] = None,
    feed: OrderFeedService = Depends(get_feed_service),
):
    return await feed.query(EntityQuery(status=status, kind=kind))


@router.get("/orders/stats", response_model=FeedStats)
async def order_stats(feed: OrderFeedService = Depends(get_feed_service)):
    return await feed.stats()


@router.get("/orders/{ref}", response_model=UnifiedOrderEntity)
async def get_order(entity: UnifiedOrderEntity = Depends(get_entity)):
    return entity


@router.get("/orders/{ref}/progress", response_model=ProgressProjection)
async def order_progress(entity: UnifiedOrderEntity = Depends(get_entity)):
    return project_entity(entity)


@router.get("/orders/{ref}/actions", response_model=ActionsView)
async def order_actions(entity: UnifiedOrderEntity = Depends(get_entity)):
    return describe_actions(entity)


@router.post("/orders", response_model=UnifiedOrderEntity, status_code=201)
async def create_order(
    payload: OrderCreate,
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.create_order(payload)


@router.delete("/orders/{ref}", status_code=204)
async def delete_order(
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    await service.delete_order(entity)
    return Response(status_code=204)


@router.patch("/orders/{ref}", response_model=UnifiedOrderEntity)
async def edit_order(
    payload: DetailsUpdateInput,
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.edit_details(entity, payload)


@router.post("/orders/{ref}/status", response_model=UnifiedOrderEntity)
async def update_order_status(
    payload: StatusUpdateInput,
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.update_order_status(entity, payload)


@router.post("/quotations/{ref}/send-quote", response_model=UnifiedOrderEntity)
async def send_quote(
    payload: SendQuoteInput,
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.send_quote(entity, payload)


@router.post("/quotations/{ref}/accept-counter", response_model=UnifiedOrderEntity)
async def accept_counter(
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.accept_counter(entity)


@router.post("/quotations/{ref}/reject-counter", response_model=UnifiedOrderEntity)
async def reject_counter(
    payload: Optional[RejectInput] = None,
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.reject_counter(entity, payload)


@router.post("/quotations/{ref}/accept-request", response_model=UnifiedOrderEntity)
async def accept_quote_request(
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.accept_quote_request(entity)


@router.post("/quotations/{ref}/reject-request", response_model=UnifiedOrderEntity)
async def reject_quote_request(
    payload: Optional[RejectInput] = None,
    entity: UnifiedOrderEntity = Depends(get_entity),
    service: LifecycleService = Depends(get_lifecycle_service),
):
    return await service.reject_quote_request(entity, payload)
