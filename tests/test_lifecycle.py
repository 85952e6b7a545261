import pytest

from bulkflow.domain import Actor, LifecycleAction
from bulkflow.errors import InvalidTransitionError, ValidationError
from bulkflow.lifecycle import (
    TRANSITIONS,
    available_actions,
    can_perform,
    plan_accept,
    plan_reject,
    plan_send_quote,
    plan_update_order_status,
    whose_turn,
)
from bulkflow.normalizer import normalize_order, normalize_quotation
from bulkflow.statuses import SourceKind


def quotation(make_quotation, status="PENDING", **overrides):
    return normalize_quotation(make_quotation(status=status, **overrides))


class TestTurns:
    @pytest.mark.parametrize(
        "status, actor",
        [
            ("quote_requested", Actor.ADMIN),
            ("negotiation", Actor.ADMIN),
            ("quote_sent", Actor.CUSTOMER),
            ("order_booked", Actor.NONE),
            ("rejected", Actor.NONE),
        ],
    )
    def test_quotation_turns(self, status, actor):
        assert whose_turn(SourceKind.QUOTATION, status) == actor

    def test_orders_have_no_turn(self):
        assert whose_turn(SourceKind.ORDER, "quote_requested") == Actor.NONE


class TestAvailableActions:
    def test_quote_requested(self, make_quotation):
        assert available_actions(quotation(make_quotation)) == [
            LifecycleAction.SEND_QUOTE,
            LifecycleAction.ACCEPT_QUOTE_REQUEST,
            LifecycleAction.REJECT_QUOTE_REQUEST,
        ]

    def test_negotiation(self, make_quotation):
        assert available_actions(quotation(make_quotation, "NEGOTIATING")) == [
            LifecycleAction.SEND_QUOTE,
            LifecycleAction.ACCEPT_COUNTER,
            LifecycleAction.REJECT_COUNTER,
        ]

    def test_customer_turn_blocks_admin(self, make_quotation):
        assert available_actions(quotation(make_quotation, "QUOTE_SENT")) == []

    def test_order_only_updates_status(self, make_order):
        assert available_actions(normalize_order(make_order())) == [LifecycleAction.UPDATE_ORDER_STATUS]

    @pytest.mark.parametrize("status", ["CANCELLED", "DELIVERED"])
    def test_terminal_order_is_frozen(self, make_order, status):
        assert available_actions(normalize_order(make_order(status=status))) == []

    def test_unknown_order_status_can_still_move(self, make_order):
        entity = normalize_order(make_order(status="ON_HOLD"))
        assert can_perform(entity, LifecycleAction.UPDATE_ORDER_STATUS)


class TestTransitionTable:
    def test_order_row_admits_any_non_terminal_status(self):
        transition = TRANSITIONS[LifecycleAction.UPDATE_ORDER_STATUS]
        assert transition.admits("processing")
        assert transition.admits("on_hold")
        assert not transition.admits("cancelled")
        assert not transition.admits("delivered")

    def test_quotation_rows_admit_only_listed_statuses(self):
        transition = TRANSITIONS[LifecycleAction.ACCEPT_COUNTER]
        assert transition.admits("negotiation")
        assert not transition.admits("quote_requested")


class TestPlans:
    def test_send_quote_fills_missing_prices_with_target(self, make_quotation):
        products = [
            {"productId": "p-1", "quantity": 10, "targetPrice": 35},
            {"productId": "p-2", "quantity": 1, "targetPrice": 100},
        ]
        entity = quotation(make_quotation, products=products)
        request = plan_send_quote(entity, {"p-1": 40}, notes="best price")
        fields = request.quotation_fields()
        assert request.target_id == entity.id
        assert fields["status"] == "QUOTE_SENT"
        assert fields["notes"] == "best price"
        assert fields["products"] == [
            {"productId": "p-1", "quantity": 10, "targetPrice": 35, "quotedPrice": 40},
            {"productId": "p-2", "quantity": 1, "targetPrice": 100, "quotedPrice": 100},
        ]

    def test_send_quote_rejected_on_customer_turn(self, make_quotation):
        with pytest.raises(InvalidTransitionError) as excinfo:
            plan_send_quote(quotation(make_quotation, "QUOTE_SENT"), {})
        assert excinfo.value.action == "send_quote"
        assert excinfo.value.status == "quote_sent"

    def test_accept_books_at_target_prices(self, make_quotation):
        products = [{"productId": "p-1", "quantity": 10, "targetPrice": 35, "quotedPrice": 45}]
        entity = quotation(make_quotation, "NEGOTIATING", products=products)
        fields = plan_accept(entity, LifecycleAction.ACCEPT_COUNTER).quotation_fields()
        assert fields["status"] == "ACCEPTED"
        assert fields["products"][0]["quotedPrice"] == 35

    def test_accept_counter_requires_negotiation(self, make_quotation):
        with pytest.raises(InvalidTransitionError):
            plan_accept(quotation(make_quotation), LifecycleAction.ACCEPT_COUNTER)

    def test_accept_rejects_non_accept_action(self, make_quotation):
        with pytest.raises(ValidationError):
            plan_accept(quotation(make_quotation), LifecycleAction.SEND_QUOTE)

    def test_reject_carries_reason(self, make_quotation):
        fields = plan_reject(quotation(make_quotation), LifecycleAction.REJECT_QUOTE_REQUEST, "out of stock").quotation_fields()
        assert fields == {"status": "REJECTED", "notes": "out of stock"}

    def test_order_status_targets_backend_number(self, make_order):
        entity = normalize_order(make_order())
        request = plan_update_order_status(entity, " Shipped ")
        assert request.target_id == "ORD-2025-001"
        assert request.backend_status == "SHIPPED"

    def test_order_status_without_number_targets_record_id(self, make_order):
        entity = normalize_order(make_order(orderId=None))
        assert entity.display_number.startswith("ORD-")
        assert plan_update_order_status(entity, "shipped").target_id == entity.id

    def test_order_status_processing_submits_paid(self, make_order):
        entity = normalize_order(make_order(status="CONFIRMED"))
        assert plan_update_order_status(entity, "processing").backend_status == "PAID"

    def test_order_status_blank_is_invalid(self, make_order):
        with pytest.raises(ValidationError):
            plan_update_order_status(normalize_order(make_order()), "   ")

    def test_quotation_cannot_take_order_status(self, make_quotation):
        with pytest.raises(InvalidTransitionError):
            plan_update_order_status(quotation(make_quotation), "shipped")
