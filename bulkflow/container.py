from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .clock import Clock, SystemClock
from .http_transport import HttpOrderTransport
from .id_provider import IdProvider, ObjectIdProvider
from .logging import ServiceLogger
from .seed import load_backend_seed
from .services import LifecycleService, OrderFeedService
from .settings import Settings, TransportMode
from .transport import InMemoryOrderTransport, OrderTransport


@dataclass
class Container:
    settings: Settings
    transport: OrderTransport
    feed_service: OrderFeedService
    lifecycle_service: LifecycleService
    clock: Clock
    id_provider: IdProvider


def build_container(
    settings: Settings,
    transport: Optional[OrderTransport] = None,
    clock: Optional[Clock] = None,
) -> Container:
    clock = clock or SystemClock()
    ids = ObjectIdProvider()
    log = ServiceLogger("container")

    if transport is None:
        if settings.transport_mode == TransportMode.HTTP:
            transport = HttpOrderTransport.from_settings(settings)
            log.info("Using HTTP backend", base_url=settings.backend_base_url)
        else:
            memory = InMemoryOrderTransport(clock, ids)
            if settings.seed_path:
                seed = load_backend_seed(settings.seed_path)
                memory.seed(seed.orders, seed.quotations)
                log.info("Seeded in-memory backend", orders=len(seed.orders), quotations=len(seed.quotations))
            transport = memory

    feed_service = OrderFeedService(transport, clock, settings.default_currency)
    lifecycle_service = LifecycleService(transport, feed_service, settings.default_currency)

    return Container(
        settings=settings,
        transport=transport,
        feed_service=feed_service,
        lifecycle_service=lifecycle_service,
        clock=clock,
        id_provider=ids,
    )
