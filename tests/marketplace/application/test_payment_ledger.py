"""Application tests for the payment ledger and its order mirror."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.errors import ConflictError
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder
from marketplace.payment import ledger
from marketplace.payment.payment import Payment, PaymentStatus
from marketplace.payment.processing import (
    ConfirmCashPayment,
    ConfirmPayment,
    CreatePayment,
    FailPayment,
    ProcessPayment,
    RefundPayment,
)


def _place_order(payment_method="card", unit_price=50.0):
    return current_domain.process(
        PlaceOrder(
            customer_id="cust-001",
            store_id="store-001",
            payment_method=payment_method,
            items=json.dumps([{"product_id": "p1", "name": "Knafeh", "unit_price": unit_price, "quantity": 1}]),
            delivery_address=json.dumps({"full_name": "Lina", "phone_number": "1", "full_address": "12 Baghdad St"}),
        ),
        asynchronous=False,
    )


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _payment(payment_id):
    return current_domain.repository_for(Payment).get(payment_id)


def _completed_payment(amount=50.0):
    order_id = _place_order(unit_price=amount)
    payment_id = current_domain.process(
        ProcessPayment(order_id=order_id, payment_method="card", gateway_response=json.dumps({"transaction_id": "t1"})),
        asynchronous=False,
    )
    current_domain.process(ConfirmPayment(payment_id=payment_id), asynchronous=False)
    return order_id, payment_id


class TestCreatePayment:
    def test_amount_is_order_total(self):
        order_id = _place_order(unit_price=120.0)
        payment_id = current_domain.process(CreatePayment(order_id=order_id, payment_method="card"), asynchronous=False)
        payment = _payment(payment_id)
        assert payment.amount == 120.0
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.store_id == "store-001"

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(CreatePayment(order_id="ord-missing", payment_method="card"), asynchronous=False)

    def test_second_payment_for_order_conflicts(self):
        order_id = _place_order()
        current_domain.process(CreatePayment(order_id=order_id, payment_method="card"), asynchronous=False)
        with pytest.raises(ConflictError):
            current_domain.process(CreatePayment(order_id=order_id, payment_method="card"), asynchronous=False)

    def test_mixed_breakdown_must_match_total(self):
        order_id = _place_order(payment_method="mixed", unit_price=100.0)
        with pytest.raises(ValidationError):
            current_domain.process(
                CreatePayment(order_id=order_id, payment_method="mixed", breakdown=json.dumps({"cash": 10.0})),
                asynchronous=False,
            )


class TestProcessAndConfirm:
    def test_process_creates_payment_and_mirrors_pending(self):
        order_id = _place_order()
        payment_id = current_domain.process(
            ProcessPayment(
                order_id=order_id,
                payment_method="card",
                gateway_response=json.dumps({"transaction_id": "gw-123", "status": "authorised"}),
            ),
            asynchronous=False,
        )
        payment = _payment(payment_id)
        assert payment.status == PaymentStatus.PROCESSING.value
        assert payment.transaction_id == "gw-123"
        assert json.loads(payment.gateway_response)["status"] == "authorised"
        assert _order(order_id).payment_status == "pending"

    def test_confirm_mirrors_paid(self):
        order_id, payment_id = _completed_payment()
        assert _payment(payment_id).status == PaymentStatus.COMPLETED.value
        assert _order(order_id).payment_status == "paid"

    def test_confirm_twice_conflicts(self):
        _, payment_id = _completed_payment()
        with pytest.raises(ConflictError):
            current_domain.process(ConfirmPayment(payment_id=payment_id), asynchronous=False)

    def test_confirm_with_stale_revision_conflicts(self):
        order_id = _place_order()
        payment_id = current_domain.process(CreatePayment(order_id=order_id, payment_method="card"), asynchronous=False)
        with pytest.raises(ConflictError):
            current_domain.process(ConfirmPayment(payment_id=payment_id, expected_revision=7), asynchronous=False)
        assert _payment(payment_id).status == PaymentStatus.PENDING.value

    def test_unknown_payment(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(ConfirmPayment(payment_id="pay-missing"), asynchronous=False)

    def test_fail_mirrors_failed(self):
        order_id = _place_order()
        payment_id = current_domain.process(ProcessPayment(order_id=order_id, payment_method="card"), asynchronous=False)
        current_domain.process(FailPayment(payment_id=payment_id, reason="Card declined"), asynchronous=False)
        assert _payment(payment_id).failure_reason == "Card declined"
        assert _order(order_id).payment_status == "failed"

    def test_failed_payment_can_be_retried(self):
        order_id = _place_order()
        payment_id = current_domain.process(ProcessPayment(order_id=order_id, payment_method="card"), asynchronous=False)
        current_domain.process(FailPayment(payment_id=payment_id, reason="Timeout"), asynchronous=False)
        retried = current_domain.process(ProcessPayment(order_id=order_id, payment_method="card"), asynchronous=False)
        assert retried == payment_id
        assert _payment(payment_id).status == PaymentStatus.PROCESSING.value


class TestCashConfirmation:
    def test_confirm_cash_by_order(self):
        order_id = _place_order(payment_method="cash")
        payment_id = current_domain.process(CreatePayment(order_id=order_id, payment_method="cash"), asynchronous=False)
        current_domain.process(ConfirmCashPayment(order_id=order_id, confirmed_by="courier-001"), asynchronous=False)

        payment = _payment(payment_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.notes == ledger.CASH_CONFIRMATION_NOTE
        assert _order(order_id).payment_status == "paid"

    def test_cash_confirmation_is_idempotent(self):
        order_id = _place_order(payment_method="cash")
        current_domain.process(CreatePayment(order_id=order_id, payment_method="cash"), asynchronous=False)
        first = current_domain.process(ConfirmCashPayment(order_id=order_id), asynchronous=False)
        revision = _payment(first).revision

        second = current_domain.process(ConfirmCashPayment(order_id=order_id), asynchronous=False)
        assert second == first
        assert _payment(first).revision == revision

    def test_non_cash_payment_rejected(self):
        order_id = _place_order(payment_method="card")
        current_domain.process(CreatePayment(order_id=order_id, payment_method="card"), asynchronous=False)
        with pytest.raises(ValidationError):
            current_domain.process(ConfirmCashPayment(order_id=order_id), asynchronous=False)

    def test_order_without_payment(self):
        order_id = _place_order(payment_method="cash")
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(ConfirmCashPayment(order_id=order_id), asynchronous=False)


class TestRefunds:
    def test_partial_then_full_refund(self):
        order_id, payment_id = _completed_payment(amount=50.0)

        current_domain.process(RefundPayment(payment_id=payment_id, amount=30.0, reason="Missing item"), asynchronous=False)
        assert _payment(payment_id).status == PaymentStatus.PARTIALLY_REFUNDED.value
        assert _order(order_id).payment_status == "paid"

        current_domain.process(RefundPayment(payment_id=payment_id, amount=20.0, reason="Late"), asynchronous=False)
        payment = _payment(payment_id)
        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.total_refunded == 50.0
        assert len(payment.refunds) == 2
        assert _order(order_id).payment_status == "refunded"

    def test_over_refund_rejected_and_nothing_recorded(self):
        _, payment_id = _completed_payment(amount=50.0)
        current_domain.process(RefundPayment(payment_id=payment_id, amount=30.0, reason="Missing item"), asynchronous=False)
        current_domain.process(RefundPayment(payment_id=payment_id, amount=20.0, reason="Late"), asynchronous=False)

        with pytest.raises(ValidationError):
            current_domain.process(RefundPayment(payment_id=payment_id, amount=1.0, reason="Extra"), asynchronous=False)

        payment = _payment(payment_id)
        assert payment.total_refunded == 50.0
        assert len(payment.refunds) == 2

    def test_refund_just_over_remaining_rejected(self):
        order_id, payment_id = _completed_payment(amount=50.0)
        current_domain.process(RefundPayment(payment_id=payment_id, amount=30.0, reason="Missing item"), asynchronous=False)

        with pytest.raises(ValidationError):
            current_domain.process(
                RefundPayment(payment_id=payment_id, amount=20.004, reason="Late"),
                asynchronous=False,
            )

        payment = _payment(payment_id)
        assert payment.total_refunded == 30.0
        assert sum(refund.amount for refund in payment.refunds) <= payment.amount
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED.value
        assert _order(order_id).payment_status == "paid"

    def test_refund_of_pending_payment_rejected(self):
        order_id = _place_order()
        payment_id = current_domain.process(CreatePayment(order_id=order_id, payment_method="card"), asynchronous=False)
        with pytest.raises(ValidationError):
            current_domain.process(RefundPayment(payment_id=payment_id, amount=5.0, reason="Early"), asynchronous=False)
