"""Stepper projection of a unified status onto the fixed stage sequence."""

from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .domain import ProgressProjection, ProgressStage, StageState, TimelineEntry, UnifiedOrderEntity
from .statuses import REJECTION_STATUSES, OrderStatus

PROGRESS_STAGES: Tuple[str, ...] = (
    OrderStatus.QUOTE_REQUESTED.value,
    OrderStatus.QUOTE_SENT.value,
    OrderStatus.NEGOTIATION.value,
    OrderStatus.ORDER_BOOKED.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
)

STAGE_COLLAPSE: Mapping[str, str] = MappingProxyType(
    {
        OrderStatus.CONFIRMED.value: OrderStatus.ORDER_BOOKED.value,
        OrderStatus.PAYMENT_PENDING.value: OrderStatus.ORDER_BOOKED.value,
        OrderStatus.PAID.value: OrderStatus.ORDER_BOOKED.value,
        OrderStatus.PACKED.value: OrderStatus.PROCESSING.value,
        OrderStatus.COMPLETED.value: OrderStatus.DELIVERED.value,
    }
)

STAGE_LABELS: Mapping[str, str] = MappingProxyType(
    {
        OrderStatus.QUOTE_REQUESTED.value: "Quote Requested",
        OrderStatus.QUOTE_SENT.value: "Quote Sent",
        OrderStatus.NEGOTIATION.value: "Negotiation",
        OrderStatus.ORDER_BOOKED.value: "Order Booked",
        OrderStatus.PROCESSING.value: "Processing",
        OrderStatus.SHIPPED.value: "Shipment Booked",
        OrderStatus.DELIVERED.value: "Delivered",
    }
)


def stage_for(status: str) -> str:
    return STAGE_COLLAPSE.get(status, status)


def stage_index(status: str) -> int:
    stage = stage_for(status)
    return PROGRESS_STAGES.index(stage) if stage in PROGRESS_STAGES else -1


def is_rejection(status: str) -> bool:
    return status in REJECTION_STATUSES


def stage_sources(stage: str) -> List[str]:
    """All statuses that count as having reached ``stage``."""
    return [stage] + [status for status, target in STAGE_COLLAPSE.items() if target == stage]


def rejection_point(timeline: Sequence[TimelineEntry]) -> int:
    for entry in reversed(timeline):
        if is_rejection(entry.status):
            continue
        index = stage_index(entry.status)
        if index != -1:
            return index
    return 0


def reached_at(stage: str, timeline: Iterable[TimelineEntry]) -> Optional[datetime]:
    sources = set(stage_sources(stage))
    matches = [entry.timestamp for entry in timeline if entry.status in sources]
    return min(matches) if matches else None


def project_progress(status: str, timeline: Sequence[TimelineEntry] = ()) -> ProgressProjection:
    rejected = is_rejection(status)
    current = rejection_point(timeline) if rejected else stage_index(status)

    stages: List[ProgressStage] = []
    for index, stage in enumerate(PROGRESS_STAGES):
        stages.append(
            ProgressStage(
                stage=stage,
                label=STAGE_LABELS[stage],
                index=index,
                state=_state(index, current, rejected),
                reached_at=reached_at(stage, timeline),
            )
        )
    return ProgressProjection(status=status, rejected=rejected, current_index=current, stages=stages)


def project_entity(entity: UnifiedOrderEntity) -> ProgressProjection:
    return project_progress(entity.status, entity.timeline)


def _state(index: int, current: int, rejected: bool) -> StageState:
    if index < current:
        return StageState.COMPLETED
    if index == current:
        return StageState.REJECTED if rejected else StageState.CURRENT
    return StageState.PENDING
