from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from .errors import StaleWriteError, TransportError
from .settings import Settings
from .transport import OrderTransport, RawRecord

_STALE_STATUSES = (409, 412)


class HttpOrderTransport(OrderTransport):
    """REST client for the order/quotation backend.

    Retries, backoff and auth refresh are left to the caller's HTTP stack.
    """

    ORDERS_LIST = "/orders/list"
    QUOTATIONS_LIST = "/orders/quotation/list"
    ORDER_UPDATE = "/orders/update"
    QUOTATION_UPDATE = "/orders/quotation/update"
    ORDER_CREATE = "/orders/create"
    ORDER_DELETE = "/orders/delete/{order_id}"

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpOrderTransport":
        headers = {"Content-Type": "application/json"}
        if settings.backend_api_token:
            headers["Authorization"] = f"Bearer {settings.backend_api_token}"
        client = httpx.AsyncClient(
            base_url=settings.backend_base_url,
            timeout=settings.backend_timeout_seconds,
            headers=headers,
        )
        return cls(client)

    async def fetch_orders(self) -> List[RawRecord]:
        body = await self._request("GET", self.ORDERS_LIST)
        return _unwrap_list(body, "orders")

    async def fetch_quotations(self) -> List[RawRecord]:
        body = await self._request("GET", self.QUOTATIONS_LIST)
        return _unwrap_list(body, "quotations")

    async def submit_order_status(
        self, order_id: str, backend_status: str, note: Optional[str] = None
    ) -> Optional[RawRecord]:
        values: Dict[str, Any] = {"status": backend_status}
        if note is not None:
            values["notes"] = note
        return await self.submit_order_update(order_id, values)

    async def submit_order_update(self, order_id: str, values: Mapping[str, Any]) -> Optional[RawRecord]:
        body = await self._request("PATCH", self.ORDER_UPDATE, json={"orderId": order_id, "values": dict(values)})
        return _unwrap_record(body, "order")

    async def submit_quotation_update(self, quotation_id: str, fields: Mapping[str, Any]) -> Optional[RawRecord]:
        body = await self._request(
            "PATCH",
            self.QUOTATION_UPDATE,
            json={"quotationId": quotation_id, "values": dict(fields)},
        )
        return _unwrap_record(body, "quotation")

    async def create_order(self, payload: Mapping[str, Any]) -> RawRecord:
        body = await self._request("POST", self.ORDER_CREATE, json=dict(payload))
        record = _unwrap_record(body, "order")
        if record is None:
            raise TransportError("Create order returned no record")
        return record

    async def delete_order(self, order_id: str) -> None:
        await self._request("DELETE", self.ORDER_DELETE.format(order_id=order_id))

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _status_error(exc.response) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None


def _status_error(response: httpx.Response) -> TransportError:
    detail = response.reason_phrase or "Backend request failed"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("error") or body.get("message") or detail
    error_cls = StaleWriteError if response.status_code in _STALE_STATUSES else TransportError
    return error_cls(detail, status_code=response.status_code)


def _unwrap_list(body: Any, key: str) -> List[RawRecord]:
    if isinstance(body, list):
        items = body
    elif isinstance(body, dict):
        items = body.get(key)
        if not isinstance(items, list):
            items = body.get("data")
        if not isinstance(items, list):
            items = []
    else:
        items = []
    return [item for item in items if isinstance(item, dict)]


def _unwrap_record(body: Any, key: str) -> Optional[RawRecord]:
    if not isinstance(body, dict):
        return None
    nested = body.get(key)
    if isinstance(nested, dict):
        return nested
    if "_id" in body:
        return body
    return None
