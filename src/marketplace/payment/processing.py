"""Payment commands — thin wrappers over the ledger for callers that go through the domain.

Breakdown and gateway response travel as JSON strings.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.payment import ledger
from marketplace.payment.payment import Payment


@marketplace.command(part_of="Payment")
class CreatePayment:
    order_id = Identifier(required=True)
    payment_method = String(required=True, max_length=10)
    breakdown = Text()  # JSON: {cash, card, points, wallet}


@marketplace.command(part_of="Payment")
class ProcessPayment:
    order_id = Identifier(required=True)
    payment_method = String(required=True, max_length=10)
    breakdown = Text()
    gateway_response = Text()  # JSON: gateway payload, optional "transaction_id"


@marketplace.command(part_of="Payment")
class ConfirmPayment:
    payment_id = Identifier(required=True)
    transaction_id = String(max_length=255)
    confirmed_by = Identifier()
    expected_revision = Integer()


@marketplace.command(part_of="Payment")
class ConfirmCashPayment:
    order_id = Identifier(required=True)
    confirmed_by = Identifier()


@marketplace.command(part_of="Payment")
class FailPayment:
    payment_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@marketplace.command(part_of="Payment")
class RefundPayment:
    payment_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True, max_length=500)
    refunded_by = Identifier()


def _json(value):
    return json.loads(value) if value else None


@marketplace.command_handler(part_of=Payment)
class PaymentLedgerHandler:
    @handle(CreatePayment)
    def create_payment(self, command):
        payment = ledger.create_payment(command.order_id, command.payment_method, _json(command.breakdown))
        return str(payment.id)

    @handle(ProcessPayment)
    def process_payment(self, command):
        payment = ledger.process_payment(
            command.order_id,
            command.payment_method,
            breakdown=_json(command.breakdown),
            gateway_response=_json(command.gateway_response),
        )
        return str(payment.id)

    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        ledger.confirm_payment(
            command.payment_id,
            transaction_id=command.transaction_id,
            confirmed_by=command.confirmed_by,
            expected_revision=command.expected_revision,
        )

    @handle(ConfirmCashPayment)
    def confirm_cash_payment(self, command):
        payment = ledger.confirm_cash_by_order_id(command.order_id, command.confirmed_by)
        return str(payment.id)

    @handle(FailPayment)
    def fail_payment(self, command):
        ledger.fail_payment(command.payment_id, command.reason)

    @handle(RefundPayment)
    def refund_payment(self, command):
        ledger.refund_payment(command.payment_id, command.amount, command.reason, command.refunded_by)
