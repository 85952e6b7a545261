import asyncio
import json

import httpx
import pytest

from bulkflow.errors import StaleWriteError, TransportError
from bulkflow.http_transport import HttpOrderTransport


def run(coro):
    return asyncio.run(coro)


def make_transport(handler) -> HttpOrderTransport:
    client = httpx.AsyncClient(base_url="http://backend.test", transport=httpx.MockTransport(handler))
    return HttpOrderTransport(client)


class TestFetch:
    def test_orders_envelope(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/orders/list"
            return httpx.Response(200, json={"orders": [{"_id": "o-1"}, "junk"]})

        assert run(make_transport(handler).fetch_orders()) == [{"_id": "o-1"}]

    def test_quotations_data_envelope(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/orders/quotation/list"
            return httpx.Response(200, json={"data": [{"_id": "q-1"}]})

        assert run(make_transport(handler).fetch_quotations()) == [{"_id": "q-1"}]

    def test_bare_list(self):
        transport = make_transport(lambda request: httpx.Response(200, json=[{"_id": "o-1"}]))
        assert run(transport.fetch_orders()) == [{"_id": "o-1"}]

    def test_unexpected_body_is_empty(self):
        transport = make_transport(lambda request: httpx.Response(200, json={"message": "ok"}))
        assert run(transport.fetch_orders()) == []


class TestUpdates:
    def test_order_status_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"order": {"_id": "o-1", "status": "SHIPPED"}})

        record = run(make_transport(handler).submit_order_status("ORD-2025-001", "SHIPPED", "AWB 1"))

        assert seen == {
            "method": "PATCH",
            "path": "/orders/update",
            "body": {"orderId": "ORD-2025-001", "values": {"status": "SHIPPED", "notes": "AWB 1"}},
        }
        assert record == {"_id": "o-1", "status": "SHIPPED"}

    def test_quotation_update_without_record(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/orders/quotation/update"
            assert json.loads(request.content)["quotationId"] == "q-1"
            return httpx.Response(200, json={"message": "Quotation updated"})

        assert run(make_transport(handler).submit_quotation_update("q-1", {"status": "ACCEPTED"})) is None

    def test_delete(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            assert request.url.path == "/orders/delete/o-1"
            return httpx.Response(204)

        assert run(make_transport(handler).delete_order("o-1")) is None


class TestErrors:
    def test_conflict_is_stale_write(self):
        transport = make_transport(lambda request: httpx.Response(409, json={"error": "version mismatch"}))
        with pytest.raises(StaleWriteError) as excinfo:
            run(transport.submit_quotation_update("q-1", {"status": "ACCEPTED"}))
        assert excinfo.value.detail == "version mismatch"
        assert excinfo.value.status_code == 409

    def test_server_error(self):
        transport = make_transport(lambda request: httpx.Response(500, json={"message": "db offline"}))
        with pytest.raises(TransportError) as excinfo:
            run(transport.fetch_orders())
        assert not isinstance(excinfo.value, StaleWriteError)
        assert excinfo.value.detail == "db offline"

    def test_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError) as excinfo:
            run(make_transport(handler).fetch_quotations())
        assert excinfo.value.status_code is None

    def test_create_without_record_fails(self):
        transport = make_transport(lambda request: httpx.Response(201, json={"message": "created"}))
        with pytest.raises(TransportError):
            run(transport.create_order({"products": []}))
