from __future__ import annotations

from fastapi import Depends, Request

from .container import Container
from .domain import EntityLookup, UnifiedOrderEntity
from .services import LifecycleService, OrderFeedService


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings(container: Container = Depends(get_container)):
    return container.settings


def get_feed_service(container: Container = Depends(get_container)) -> OrderFeedService:
    return container.feed_service


def get_lifecycle_service(container: Container = Depends(get_container)) -> LifecycleService:
    return container.lifecycle_service


async def get_entity(ref: str, feed: OrderFeedService = Depends(get_feed_service)) -> UnifiedOrderEntity:
    return await feed.get_entity(EntityLookup(ref=ref))
