from __future__ import annotations

from datetime import datetime, timezone

import pytest

from bulkflow.clock import ManualClock
from bulkflow.id_provider import ObjectIdProvider
from bulkflow.services import LifecycleService, OrderFeedService
from bulkflow.transport import InMemoryOrderTransport


def quotation_record(record_id: str = "665f00000000000000000001", **overrides) -> dict:
    record = {
        "_id": record_id,
        "quotationId": "QUO-2025-001",
        "customerId": "cust-001",
        "products": [{"productId": "prod-000001", "quantity": 10, "targetPrice": 35}],
        "status": "PENDING",
        "createdAt": "2025-01-01T00:00:00.000Z",
        "updatedAt": "2025-01-01T00:00:00.000Z",
    }
    record.update(overrides)
    return record


def order_record(record_id: str = "665f00000000000000000101", **overrides) -> dict:
    record = {
        "_id": record_id,
        "orderId": "ORD-2025-001",
        "customerId": "cust-002",
        "products": [{"productId": "prod-000002", "quantity": 2, "price": 150}],
        "totalAmount": 300,
        "currency": "INR",
        "status": "PROCESSING",
        "createdAt": "2025-01-01T00:00:00.000Z",
        "updatedAt": "2025-01-01T00:00:00.000Z",
    }
    record.update(overrides)
    return record


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2025, 2, 1, tzinfo=timezone.utc))


@pytest.fixture
def transport(clock) -> InMemoryOrderTransport:
    return InMemoryOrderTransport(clock, ObjectIdProvider())


@pytest.fixture
def feed(transport, clock) -> OrderFeedService:
    return OrderFeedService(transport, clock)


@pytest.fixture
def lifecycle(transport, feed) -> LifecycleService:
    return LifecycleService(transport, feed)


@pytest.fixture
def make_quotation():
    return quotation_record


@pytest.fixture
def make_order():
    return order_record
