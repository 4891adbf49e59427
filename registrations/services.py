import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from payments.exceptions import NotFound, PaymentError
from payments.models import InstallmentPlan, PaymentRecord, PaymentStatus, PaymentType, PlanStatus

from .models import PaymentProgress, Registration, RegistrationStatus, check_admin_transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkResult:
    id: int
    ok: bool
    status: str | None = None
    error: str | None = None
    detail: str | None = None

    def as_dict(self):
        return {k: v for k, v in self.__dict__.items() if v is not None}


class RegistrationCoordinator:
    """
    Keeps a registration's lifecycle in step with payments and admin review.
    """

    @staticmethod
    def payment_progress(user, course) -> str:
        """Derived from what is persisted, never from counters kept elsewhere."""
        paid_in_full = PaymentRecord.objects.filter(
            user=user, course=course, payment_type=PaymentType.COURSE_FEE, status=PaymentStatus.SUCCESS,
        ).exists()
        plan_done = InstallmentPlan.objects.filter(user=user, course=course, status=PlanStatus.COMPLETED).exists()
        if paid_in_full or plan_done:
            return PaymentProgress.PAID

        any_paid = PaymentRecord.objects.filter(user=user, course=course, status=PaymentStatus.SUCCESS).exists()
        return PaymentProgress.PARTIAL if any_paid else PaymentProgress.UNPAID

    @classmethod
    @transaction.atomic
    def on_payment_completed(cls, user, course):
        registration = (
            Registration.objects.select_for_update()
            .filter(user=user, course=course)
            .first()
        )
        if registration is None:
            logger.warning(f"Payment completed for user {user.pk} course {course.pk} but no registration exists")
            return None

        progress = cls.payment_progress(user, course)
        update_fields = ["updated_at"]

        # never step back from paid
        if registration.payment_status != PaymentProgress.PAID and progress != registration.payment_status:
            registration.payment_status = progress
            update_fields.append("payment_status")

        # pending/rejected stay put, payment does not bypass admin approval
        if registration.status == RegistrationStatus.APPROVED and registration.payment_status == PaymentProgress.PAID:
            registration.status = RegistrationStatus.COMPLETED
            registration.completed_at = timezone.now()
            update_fields += ["status", "completed_at"]
            logger.info(f"Registration {registration.pk} completed after payment settled")

        registration.save(update_fields=update_fields)
        return registration

    @classmethod
    @transaction.atomic
    def admin_set_status(cls, registration_id, new_status, note="", actor=None) -> Registration:
        try:
            registration = Registration.objects.select_for_update().get(pk=registration_id)
        except Registration.DoesNotExist:
            raise NotFound("Registration not found.", registration=registration_id)

        check_admin_transition(registration.status, new_status, registration_id=registration.pk)

        old_status = registration.status
        registration.status = new_status
        registration.reviewed_by = actor
        registration.reviewed_at = timezone.now()
        registration.add_note(note)
        registration.save(update_fields=["status", "reviewed_by", "reviewed_at", "notes", "updated_at"])

        logger.info(
            f"Registration {registration.pk}: {old_status} -> {new_status} "
            f"by {getattr(actor, 'pk', None)}"
        )

        # fee may have been settled while the registration waited for review,
        # progress is re-derived from the payments rather than the stored field
        if new_status == RegistrationStatus.APPROVED:
            registration = cls.on_payment_completed(registration.user, registration.course)

        return registration

    @classmethod
    def bulk_set_status(cls, registration_ids, new_status, note="", actor=None) -> list[BulkResult]:
        """
        Applies ``admin_set_status`` to each id in its own transaction;
        one failure does not stop the rest.
        """
        results = []
        for registration_id in dict.fromkeys(registration_ids):
            try:
                registration = cls.admin_set_status(registration_id, new_status, note=note, actor=actor)
            except PaymentError as exc:
                logger.warning(f"Bulk status change skipped registration {registration_id}: {exc.code}")
                results.append(BulkResult(id=registration_id, ok=False, error=exc.code, detail=exc.detail))
            else:
                results.append(BulkResult(id=registration_id, ok=True, status=registration.status))
        return results
