"""Payment queries."""

from marketplace.domain import marketplace
from marketplace.payment.payment import Payment


@marketplace.repository(part_of=Payment)
class PaymentRepository:
    def find_by_order(self, order_id: str) -> Payment | None:
        results = self._dao.query.filter(order_id=order_id).all().items
        return results[0] if results else None
