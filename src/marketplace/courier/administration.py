"""Courier administration — suspension, commission and verification review."""

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.courier.courier import CourierProfile
from marketplace.domain import marketplace
from marketplace.shared.revision import check_revision

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="CourierProfile")
class SuspendCourier:
    courier_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    suspended_by = Identifier()
    expected_revision = Integer()


@marketplace.command(part_of="CourierProfile")
class UnsuspendCourier:
    courier_id = Identifier(required=True)
    unsuspended_by = Identifier()
    expected_revision = Integer()


@marketplace.command(part_of="CourierProfile")
class UpdateCommissionRate:
    courier_id = Identifier(required=True)
    commission_rate = Float(required=True)
    updated_by = Identifier()


@marketplace.command(part_of="CourierProfile")
class ReviewCourierVerification:
    courier_id = Identifier(required=True)
    verification_status = String(required=True, max_length=20)
    reviewed_by = Identifier()
    notes = String(max_length=500)


@marketplace.command_handler(part_of=CourierProfile)
class CourierAdministrationHandler:
    @handle(SuspendCourier)
    def suspend(self, command):
        repo = current_domain.repository_for(CourierProfile)
        courier = repo.get(command.courier_id)
        check_revision(courier, command.expected_revision)
        courier.suspend(reason=command.reason, suspended_by=command.suspended_by)
        repo.add(courier)
        logger.info("Courier suspended", courier_id=str(courier.id), reason=command.reason)

    @handle(UnsuspendCourier)
    def unsuspend(self, command):
        repo = current_domain.repository_for(CourierProfile)
        courier = repo.get(command.courier_id)
        check_revision(courier, command.expected_revision)
        courier.unsuspend(unsuspended_by=command.unsuspended_by)
        repo.add(courier)
        logger.info("Courier unsuspended", courier_id=str(courier.id))

    @handle(UpdateCommissionRate)
    def update_commission_rate(self, command):
        repo = current_domain.repository_for(CourierProfile)
        courier = repo.get(command.courier_id)
        courier.update_commission_rate(command.commission_rate, updated_by=command.updated_by)
        repo.add(courier)

    @handle(ReviewCourierVerification)
    def review_verification(self, command):
        repo = current_domain.repository_for(CourierProfile)
        courier = repo.get(command.courier_id)
        courier.review_verification(
            command.verification_status,
            reviewed_by=command.reviewed_by,
            notes=command.notes,
        )
        repo.add(courier)
