from datetime import datetime, timezone

from bulkflow.normalizer import (
    EPOCH,
    normalize_order,
    normalize_quotation,
    parse_timestamp,
)
from bulkflow.statuses import SourceKind


class TestTimestamps:
    def test_z_suffix_is_utc(self):
        assert parse_timestamp("2025-03-04T05:06:07.000Z") == datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)

    def test_naive_value_is_treated_as_utc(self):
        assert parse_timestamp("2025-03-04T05:06:07").tzinfo == timezone.utc

    def test_garbage_falls_back_to_epoch(self):
        assert parse_timestamp("yesterday") == EPOCH
        assert parse_timestamp(None) == EPOCH


class TestNormalizeOrder:
    def test_maps_fields(self, make_order):
        entity = normalize_order(make_order())
        assert entity.source_kind == SourceKind.ORDER
        assert entity.display_number == "ORD-2025-001"
        assert entity.status == "processing"
        assert entity.total_amount == 300
        assert entity.customer_name == "Loading…"
        assert entity.line_items[0].unit_price == 150
        assert entity.line_items[0].line_total == 300
        assert entity.is_quotation is False

    def test_display_number_derived_when_missing(self, make_order):
        entity = normalize_order(make_order(record_id="665f0000000000000abcdef1", orderId=None))
        assert entity.display_number == "ORD-0ABCDEF1"

    def test_guest_without_customer(self, make_order):
        assert normalize_order(make_order(customerId=None)).customer_name == "Guest"

    def test_default_currency_applied(self, make_order):
        assert normalize_order(make_order(currency=None), "USD").currency == "USD"

    def test_malformed_fields_fall_back(self):
        entity = normalize_order(
            {"_id": "x1", "products": "nope", "totalAmount": "abc", "createdAt": 12, "status": None}
        )
        assert entity.line_items == []
        assert entity.total_amount == 0
        assert entity.created_at == EPOCH
        assert entity.status == ""

    def test_non_mapping_input_is_empty_entity(self):
        entity = normalize_order(None)
        assert entity.id == ""
        assert entity.line_items == []

    def test_timeline_defaults_to_current_status(self, make_order):
        entity = normalize_order(make_order())
        assert [(entry.status, entry.timestamp) for entry in entity.timeline] == [("processing", entity.created_at)]

    def test_timeline_translates_history(self, make_order):
        history = [
            {"status": "PENDING", "timestamp": "2025-01-01T00:00:00.000Z"},
            {"status": "PROCESSING", "timestamp": "2025-01-02T00:00:00.000Z", "note": "paid"},
        ]
        entity = normalize_order(make_order(statusHistory=history))
        assert [entry.status for entry in entity.timeline] == ["payment_pending", "processing"]
        assert entity.timeline[1].note == "paid"


class TestNormalizeQuotation:
    def test_total_falls_back_to_target_sum(self, make_quotation):
        entity = normalize_quotation(make_quotation())
        assert entity.total_amount == 350
        assert entity.quoted_total is None
        assert entity.status == "quote_requested"
        assert entity.display_number == "QUO-2025-001"

    def test_backend_total_wins(self, make_quotation):
        assert normalize_quotation(make_quotation(totalAmount=400)).total_amount == 400

    def test_quoted_total_only_when_it_differs(self, make_quotation):
        products = [{"productId": "prod-000001", "quantity": 10, "targetPrice": 35, "quotedPrice": 40}]
        entity = normalize_quotation(make_quotation(products=products, status="QUOTE_SENT"))
        assert entity.quoted_total == 400
        assert entity.line_items[0].unit_price == 40
        assert entity.line_items[0].effective_price == 40
        assert entity.line_items[0].target_price == 35

    def test_unknown_status_reads_as_quote_requested(self, make_quotation):
        assert normalize_quotation(make_quotation(status="WEIRD")).status == "quote_requested"

    def test_display_number_derived_when_missing(self, make_quotation):
        entity = normalize_quotation(make_quotation(record_id="665f000000000000000000ab", quotationId=""))
        assert entity.display_number == "QUO-000000AB"

    def test_input_is_not_mutated(self, make_quotation):
        raw = make_quotation()
        snapshot = dict(raw)
        normalize_quotation(raw)
        assert raw == snapshot


class TestSums:
    def test_line_totals_add_up_without_quoted_total(self, make_quotation):
        products = [
            {"productId": "p-1", "quantity": 3, "targetPrice": 100},
            {"productId": "p-2", "quantity": 1, "targetPrice": 50},
        ]
        entity = normalize_quotation(make_quotation(products=products))
        assert entity.quoted_total is None
        assert sum(item.line_total for item in entity.line_items) == entity.total_amount == 350

    def test_matching_quoted_prices_collapse_quoted_total(self, make_quotation):
        products = [{"productId": "p-1", "quantity": 3, "targetPrice": 100, "quotedPrice": 100}]
        assert normalize_quotation(make_quotation(products=products)).quoted_total is None
