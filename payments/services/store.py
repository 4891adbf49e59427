import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import DuplicateReference, NotFound
from ..models import PaymentRecord, PaymentStatus, check_payment_transition

logger = logging.getLogger(__name__)

ADMIN_ORDERING = {
    "created_at", "-created_at", "amount", "-amount",
    "paid_at", "-paid_at", "status", "-status",
}


class PaymentRecordStore:
    """
    Durable record of every payment attempt. Records are only ever created
    here and only ever change status through ``transition``.
    """

    @staticmethod
    def create_pending(*, user, course, amount, payment_type, reference, **extra) -> PaymentRecord:
        if PaymentRecord.objects.filter(reference=reference).exists():
            raise DuplicateReference(reference=reference)

        try:
            # savepoint so a lost race does not poison the caller's transaction
            with transaction.atomic():
                record = PaymentRecord.objects.create(
                    user=user,
                    course=course,
                    amount=amount,
                    payment_type=payment_type,
                    reference=reference,
                    **extra,
                )
        except IntegrityError:
            raise DuplicateReference(reference=reference)

        logger.info(f"Pending {payment_type} payment {reference} created for user {user.pk} ({amount})")
        return record

    @staticmethod
    def get(reference, *, for_update=False) -> PaymentRecord:
        qs = PaymentRecord.objects.select_related("course", "installment_plan")
        if for_update:
            # installment_plan is an outer join, lock only the payment row
            qs = qs.select_for_update(of=("self",))
        try:
            return qs.get(reference=reference)
        except PaymentRecord.DoesNotExist:
            raise NotFound(reference=reference)

    @staticmethod
    def transition(record: PaymentRecord, new_status, *, gateway_response=None, payment_method=None) -> PaymentRecord:
        check_payment_transition(record.status, new_status, reference=record.reference)

        record.status = new_status
        update_fields = ["status", "updated_at"]
        if new_status == PaymentStatus.SUCCESS:
            record.paid_at = timezone.now()
            update_fields.append("paid_at")
        if gateway_response is not None:
            record.gateway_response = gateway_response
            update_fields.append("gateway_response")
        if payment_method:
            record.payment_method = payment_method
            update_fields.append("payment_method")

        record.save(update_fields=update_fields)
        return record

    @staticmethod
    def list_for_admin(filters=None, ordering=None):
        """
        Read-only admin listing. Supported filters:
          status, payment_type, user, course, reference, created_after, created_before
        """
        filters = filters or {}
        qs = PaymentRecord.objects.select_related("user", "course")

        for field in ("status", "payment_type"):
            if filters.get(field):
                qs = qs.filter(**{field: filters[field]})
        if filters.get("user"):
            qs = qs.filter(user_id=filters["user"])
        if filters.get("course"):
            qs = qs.filter(course_id=filters["course"])
        if filters.get("reference"):
            qs = qs.filter(reference__icontains=filters["reference"])
        if filters.get("created_after"):
            qs = qs.filter(created_at__date__gte=filters["created_after"])
        if filters.get("created_before"):
            qs = qs.filter(created_at__date__lte=filters["created_before"])

        if ordering not in ADMIN_ORDERING:
            ordering = "-created_at"
        return qs.order_by(ordering, "-id")

    @staticmethod
    def list_for_user(user):
        return PaymentRecord.objects.filter(user=user).select_related("course").order_by("-created_at")
