from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from .clock import Clock, to_backend_timestamp
from .errors import TransportError
from .id_provider import IdProvider

RawRecord = Dict[str, Any]


class OrderTransport(Protocol):
    """Order/quotation store behind the dashboard. Raw records use backend keys."""

    async def fetch_orders(self) -> List[RawRecord]: ...

    async def fetch_quotations(self) -> List[RawRecord]: ...

    async def submit_order_status(
        self, order_id: str, backend_status: str, note: Optional[str] = None
    ) -> Optional[RawRecord]: ...

    async def submit_order_update(self, order_id: str, values: Mapping[str, Any]) -> Optional[RawRecord]: ...

    async def submit_quotation_update(self, quotation_id: str, fields: Mapping[str, Any]) -> Optional[RawRecord]: ...

    async def create_order(self, payload: Mapping[str, Any]) -> RawRecord: ...

    async def delete_order(self, order_id: str) -> None: ...

    async def close(self) -> None: ...


class InMemoryOrderTransport(OrderTransport):
    """Backend double holding raw records in memory.

    With ``echo_updates=False`` update calls answer without a record, the way
    the real backend does when it only returns a message.
    """

    def __init__(self, clock: Clock, ids: IdProvider, echo_updates: bool = True) -> None:
        self._clock = clock
        self._ids = ids
        self._echo_updates = echo_updates
        self._orders: Dict[str, RawRecord] = {}
        self._quotations: Dict[str, RawRecord] = {}
        self._order_sequence = 0

    def seed(self, orders: Iterable[Mapping[str, Any]] = (), quotations: Iterable[Mapping[str, Any]] = ()) -> None:
        for record in orders:
            self.add_order(record)
        for record in quotations:
            self.add_quotation(record)

    def add_order(self, record: Mapping[str, Any]) -> RawRecord:
        stored = self._stamp(copy.deepcopy(dict(record)))
        self._orders[stored["_id"]] = stored
        return copy.deepcopy(stored)

    def add_quotation(self, record: Mapping[str, Any]) -> RawRecord:
        stored = self._stamp(copy.deepcopy(dict(record)))
        self._quotations[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def fetch_orders(self) -> List[RawRecord]:
        return [copy.deepcopy(record) for record in self._orders.values()]

    async def fetch_quotations(self) -> List[RawRecord]:
        return [copy.deepcopy(record) for record in self._quotations.values()]

    async def submit_order_status(
        self, order_id: str, backend_status: str, note: Optional[str] = None
    ) -> Optional[RawRecord]:
        record = self._find(self._orders, order_id, "orderId", "Order not found")
        record["status"] = backend_status
        if note is not None:
            record["notes"] = note
        self._touch(record, status=backend_status, note=note)
        return self._answer(record)

    async def submit_order_update(self, order_id: str, values: Mapping[str, Any]) -> Optional[RawRecord]:
        record = self._find(self._orders, order_id, "orderId", "Order not found")
        record.update(copy.deepcopy(dict(values)))
        self._touch(record, status=values.get("status"))
        return self._answer(record)

    async def submit_quotation_update(self, quotation_id: str, fields: Mapping[str, Any]) -> Optional[RawRecord]:
        record = self._find(self._quotations, quotation_id, "quotationId", "Quotation not found")
        record.update(copy.deepcopy(dict(fields)))
        self._touch(record, status=fields.get("status"), note=fields.get("notes"))
        return self._answer(record)

    async def create_order(self, payload: Mapping[str, Any]) -> RawRecord:
        record = dict(copy.deepcopy(dict(payload)))
        record.setdefault("status", "PENDING")
        record.setdefault("orderId", self._next_order_number())
        stored = self._stamp(record)
        self._orders[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def delete_order(self, order_id: str) -> None:
        record = self._find(self._orders, order_id, "orderId", "Order not found")
        del self._orders[record["_id"]]

    async def close(self) -> None:
        return None

    def _stamp(self, record: RawRecord) -> RawRecord:
        now = to_backend_timestamp(self._clock.now())
        record.setdefault("_id", self._ids.new_id())
        record.setdefault("createdAt", now)
        record.setdefault("updatedAt", record["createdAt"])
        record.setdefault("statusHistory", [{"status": record.get("status", ""), "timestamp": record["createdAt"]}])
        return record

    def _next_order_number(self) -> str:
        taken = {record.get("orderId") for record in self._orders.values()}
        while True:
            self._order_sequence += 1
            number = f"ORD-{self._clock.now().year}-{self._order_sequence:03d}"
            if number not in taken:
                return number

    def _touch(self, record: RawRecord, status: Optional[str] = None, note: Optional[str] = None) -> None:
        now = to_backend_timestamp(self._clock.now())
        record["updatedAt"] = now
        if status:
            event: RawRecord = {"status": status, "timestamp": now}
            if note:
                event["note"] = note
            record.setdefault("statusHistory", []).append(event)

    def _answer(self, record: RawRecord) -> Optional[RawRecord]:
        return copy.deepcopy(record) if self._echo_updates else None

    @staticmethod
    def _find(records: Dict[str, RawRecord], ref: str, number_key: str, missing: str) -> RawRecord:
        if ref in records:
            return records[ref]
        for record in records.values():
            if record.get(number_key) == ref:
                return record
        raise TransportError(missing, status_code=404)
