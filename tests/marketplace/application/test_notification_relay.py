"""Application tests for the outbound event relay."""

import json

from protean import current_domain

from marketplace.courier.administration import ReviewCourierVerification, SuspendCourier, UnsuspendCourier
from marketplace.courier.assignment import AcceptOrder, AssignOrderToCourier, RejectOrder
from marketplace.courier.profile import RegisterCourier
from marketplace.courier.tracking import UpdateDeliveryStatus
from marketplace.notification import set_notifier
from marketplace.notification.port import Notifier
from marketplace.order.placement import PlaceOrder
from marketplace.order.status import UpdateOrderStatus
from marketplace.payment.processing import ConfirmPayment, FailPayment, ProcessPayment, RefundPayment


def _ready_order(payment_method="cash"):
    order_id = current_domain.process(
        PlaceOrder(
            customer_id="cust-001",
            store_id="store-001",
            payment_method=payment_method,
            items=json.dumps([{"product_id": "p1", "name": "Shish tawook", "unit_price": 40.0, "quantity": 1}]),
            delivery_address=json.dumps({"full_name": "Lina", "phone_number": "1", "full_address": "12 Baghdad St"}),
        ),
        asynchronous=False,
    )
    for status in ("confirmed", "preparing", "ready"):
        current_domain.process(UpdateOrderStatus(order_id=order_id, status=status), asynchronous=False)
    return order_id


def _verified_courier(account_id="acct-001"):
    courier_id = current_domain.process(RegisterCourier(account_id=account_id, name="Sami"), asynchronous=False)
    current_domain.process(
        ReviewCourierVerification(courier_id=courier_id, verification_status="approved"),
        asynchronous=False,
    )
    return courier_id


class TestOrderRelay:
    def test_assignment_accept_and_delivery_published(self, notifier):
        order_id = _ready_order()
        courier_id = _verified_courier()
        current_domain.process(
            AssignOrderToCourier(order_id=order_id, courier_id=courier_id, assigned_by="store-001"),
            asynchronous=False,
        )
        current_domain.process(AcceptOrder(account_id="acct-001", order_id=order_id), asynchronous=False)
        current_domain.process(
            UpdateDeliveryStatus(account_id="acct-001", order_id=order_id, status="picked_up"),
            asynchronous=False,
        )

        assert notifier.names() == [
            "order.assigned.to.courier",
            "courier.order.accepted",
            "delivery.status.updated",
        ]
        assigned = notifier.payloads_for("order.assigned.to.courier")[0]
        assert assigned == {"order_id": order_id, "courier_id": courier_id, "assigned_by": "store-001"}
        assert notifier.payloads_for("delivery.status.updated")[0]["status"] == "picked_up"

    def test_rejection_published(self, notifier):
        order_id = _ready_order()
        courier_id = _verified_courier()
        current_domain.process(AssignOrderToCourier(order_id=order_id, courier_id=courier_id), asynchronous=False)
        current_domain.process(
            RejectOrder(account_id="acct-001", order_id=order_id, reason="Too far"),
            asynchronous=False,
        )
        assert notifier.payloads_for("courier.order.rejected") == [
            {"courier_id": courier_id, "order_id": order_id, "reason": "Too far"}
        ]


class TestPaymentRelay:
    def test_payment_lifecycle_published(self, notifier):
        order_id = _ready_order(payment_method="card")
        payment_id = current_domain.process(ProcessPayment(order_id=order_id, payment_method="card"), asynchronous=False)
        current_domain.process(ConfirmPayment(payment_id=payment_id, confirmed_by="gw"), asynchronous=False)
        current_domain.process(RefundPayment(payment_id=payment_id, amount=10.0, reason="Cold"), asynchronous=False)

        assert notifier.names() == ["payment.processed", "payment.completed", "payment.refunded"]
        refunded = notifier.payloads_for("payment.refunded")[0]
        assert refunded["payment_id"] == payment_id
        assert refunded["store_id"] == "store-001"
        assert refunded["refund_amount"] == 10.0
        assert refunded["total_refunded"] == 10.0

    def test_failure_published(self, notifier):
        order_id = _ready_order(payment_method="card")
        payment_id = current_domain.process(ProcessPayment(order_id=order_id, payment_method="card"), asynchronous=False)
        current_domain.process(FailPayment(payment_id=payment_id, reason="Declined"), asynchronous=False)
        assert notifier.payloads_for("payment.failed")[0]["reason"] == "Declined"


class TestCourierRelay:
    def test_suspension_published(self, notifier):
        courier_id = _verified_courier()
        current_domain.process(
            SuspendCourier(courier_id=courier_id, reason="Complaints", suspended_by="admin-001"),
            asynchronous=False,
        )
        current_domain.process(UnsuspendCourier(courier_id=courier_id, unsuspended_by="admin-001"), asynchronous=False)
        assert notifier.names() == ["courier.suspended", "courier.unsuspended"]
        assert notifier.payloads_for("courier.suspended")[0]["reason"] == "Complaints"


class _BrokenNotifier(Notifier):
    def publish(self, event_name, payload):
        raise ConnectionError("push service down")


class TestRelayFailures:
    def test_notifier_errors_do_not_fail_commands(self):
        set_notifier(_BrokenNotifier())
        order_id = _ready_order()
        courier_id = _verified_courier()
        current_domain.process(AssignOrderToCourier(order_id=order_id, courier_id=courier_id), asynchronous=False)
