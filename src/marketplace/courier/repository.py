"""CourierProfile queries."""

from marketplace.courier.courier import CourierProfile, CourierStatus, VerificationStatus
from marketplace.domain import marketplace


@marketplace.repository(part_of=CourierProfile)
class CourierProfileRepository:
    def find_by_account(self, account_id: str) -> CourierProfile | None:
        results = self._dao.query.filter(account_id=account_id).all().items
        return results[0] if results else None

    def find_available(self) -> list[CourierProfile]:
        """Couriers that may be offered an order right now."""
        return (
            self._dao.query.filter(
                status=CourierStatus.AVAILABLE.value,
                is_suspended=False,
                verification_status=VerificationStatus.APPROVED.value,
            )
            .all()
            .items
        )
