"""Order queries."""

from datetime import datetime

from marketplace.domain import marketplace
from marketplace.order.order import Order

ORDER_NUMBER_PREFIX = "ORD"


@marketplace.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None

    def find_by_courier(self, courier_id: str) -> list[Order]:
        return self._dao.query.filter(courier_id=courier_id).all().items

    def next_order_number(self, day: datetime) -> str:
        """``ORD-YYMMDD-NNNN`` with a sequence that restarts every day."""
        prefix = f"{ORDER_NUMBER_PREFIX}-{day:%y%m%d}-"
        placed_today = self._dao.query.filter(order_number__contains=prefix).all().total
        return f"{prefix}{placed_today + 1:04d}"
