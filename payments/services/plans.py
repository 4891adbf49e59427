import logging
from datetime import timedelta
from decimal import Decimal, ROUND_DOWN

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import (
    AmountMismatch, CourseAlreadyPaid, InvalidPlanTerms, NotFound, OverpaymentRejected,
    PlanAlreadyExists, PlanNotActive,
)
from ..models import (
    CADENCE_STEP, InstallmentPlan, PaymentRecord, PaymentStatus, PaymentType,
    PlanCadence, PlanStatus,
)
from ..signals import plan_completed

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def split_course_fee(total_fee: Decimal, application_fee: Decimal, installments: int) -> Decimal:
    """
    Per-installment amount for the part of the fee not covered by the
    application fee. Only exact splits are accepted so the balance can
    always be derived from the counters.
    """
    if installments < 1:
        raise InvalidPlanTerms("A plan needs at least one installment.", total_installments=installments)
    if total_fee <= 0:
        raise InvalidPlanTerms("Course fee must be positive.", total_fee=total_fee)
    if application_fee < 0 or application_fee >= total_fee:
        raise InvalidPlanTerms(
            "Application fee must be smaller than the course fee.",
            total_fee=total_fee, application_fee=application_fee,
        )

    net = total_fee - application_fee
    amount = (net / installments).quantize(CENT, rounding=ROUND_DOWN)
    if amount * installments != net:
        raise InvalidPlanTerms(
            f"{net} cannot be split into {installments} equal installments.",
            total_fee=total_fee, total_installments=installments,
        )
    return amount


class InstallmentPlanTracker:
    """
    Single source of truth for what a student still owes on a course.
    """

    @staticmethod
    def create_plan(*, user, course, total_fee, total_installments, cadence=PlanCadence.MONTHLY,
                    application_fee=Decimal("0"), start_date=None) -> InstallmentPlan:
        total_fee = Decimal(total_fee)
        application_fee = Decimal(application_fee)
        installment_amount = split_course_fee(total_fee, application_fee, total_installments)

        if cadence not in PlanCadence.values:
            raise InvalidPlanTerms(f"Unknown payment plan '{cadence}'.", payment_plan=cadence)

        # completed and defaulted plans still hold the enrolment, only a cancelled one frees it
        if InstallmentPlanTracker.has_plan(user, course):
            raise PlanAlreadyExists(user=user.pk, course=course.pk)

        if PaymentRecord.objects.filter(
            user=user, course=course, payment_type=PaymentType.COURSE_FEE, status=PaymentStatus.SUCCESS,
        ).exists():
            raise CourseAlreadyPaid(user=user.pk, course=course.pk)

        start_date = start_date or timezone.localdate()
        # an application fee settled before enrollment still counts
        prepaid = (
            PaymentRecord.objects
            .filter(user=user, course=course, payment_type=PaymentType.APPLICATION_FEE,
                    status=PaymentStatus.SUCCESS, amount=application_fee)
            .order_by("paid_at")
            .first()
        ) if application_fee > 0 else None

        try:
            with transaction.atomic():
                plan = InstallmentPlan(
                    user=user,
                    course=course,
                    total_course_fee=total_fee,
                    application_fee_amount=application_fee,
                    total_installments=total_installments,
                    installment_amount=installment_amount,
                    remaining_balance=total_fee,
                    payment_plan=cadence,
                    next_due_date=start_date + CADENCE_STEP[cadence],
                )
                if prepaid is not None:
                    plan.application_fee_paid = True
                    plan.application_fee_reference = prepaid.reference
                    plan.recalculate()
                plan.save()
        except IntegrityError:
            raise PlanAlreadyExists(user=user.pk, course=course.pk)

        logger.info(
            f"Installment plan {plan.pk} created: user {user.pk}, course {course.pk}, "
            f"{total_installments} x {installment_amount} {cadence}"
        )
        return plan

    @staticmethod
    def _lock(plan_id) -> InstallmentPlan:
        try:
            return InstallmentPlan.objects.select_for_update().get(pk=plan_id)
        except InstallmentPlan.DoesNotExist:
            raise NotFound("Installment plan not found.", plan=plan_id)

    @staticmethod
    def _save(plan: InstallmentPlan, was_completed: bool):
        plan.save(update_fields=[
            "application_fee_paid", "application_fee_reference", "paid_installments",
            "remaining_balance", "next_due_date", "status", "updated_at",
        ])
        if plan.is_settled and not was_completed:
            logger.info(f"Installment plan {plan.pk} completed")
            plan_completed.send(sender=InstallmentPlan, plan=plan)

    @classmethod
    @transaction.atomic
    def apply_installment_payment(cls, plan_id, amount) -> InstallmentPlan:
        plan = cls._lock(plan_id)
        amount = Decimal(amount)

        if plan.status != PlanStatus.ACTIVE:
            raise PlanNotActive(plan=plan.pk, status=plan.status)

        if plan.paid_installments >= plan.total_installments or amount > plan.remaining_balance:
            raise OverpaymentRejected(
                plan=plan.pk, amount=amount, remaining_balance=plan.remaining_balance,
                paid_installments=plan.paid_installments,
            )

        if amount != plan.installment_amount:
            raise AmountMismatch(
                "Installment amount does not match the plan.",
                plan=plan.pk, expected=plan.installment_amount, received=amount,
            )

        plan.paid_installments += 1
        plan.recalculate()
        if not plan.is_settled:
            plan.advance_due_date()

        cls._save(plan, was_completed=False)
        logger.info(
            f"Plan {plan.pk}: installment {plan.paid_installments}/{plan.total_installments} applied, "
            f"balance {plan.remaining_balance}"
        )
        return plan

    @classmethod
    @transaction.atomic
    def mark_application_fee_paid(cls, plan_id, reference="") -> InstallmentPlan:
        plan = cls._lock(plan_id)

        # gateways redeliver, a second flip is a no-op
        if plan.application_fee_paid:
            logger.info(f"Plan {plan.pk}: application fee already marked paid")
            return plan

        if plan.status == PlanStatus.CANCELLED:
            raise PlanNotActive(plan=plan.pk, status=plan.status)

        was_completed = plan.is_settled
        plan.application_fee_paid = True
        plan.application_fee_reference = reference or ""
        plan.recalculate()

        cls._save(plan, was_completed=was_completed)
        logger.info(f"Plan {plan.pk}: application fee paid ({reference}), balance {plan.remaining_balance}")
        return plan

    @staticmethod
    def has_plan(user, course) -> bool:
        return (
            InstallmentPlan.objects
            .filter(user=user, course=course)
            .exclude(status=PlanStatus.CANCELLED)
            .exists()
        )

    @staticmethod
    def get_active_plan(user, course):
        return InstallmentPlan.objects.filter(user=user, course=course, status=PlanStatus.ACTIVE).first()

    @staticmethod
    def overdue(today=None):
        today = today or timezone.localdate()
        return (
            InstallmentPlan.objects
            .filter(status=PlanStatus.ACTIVE, next_due_date__lt=today)
            .select_related("user", "course")
            .order_by("next_due_date")
        )

    @staticmethod
    def mark_overdue_defaulted(today=None, grace_days=None) -> int:
        """
        Active plans whose next installment is more than ``grace_days`` late
        become defaulted. Only the status field is touched.
        """
        today = today or timezone.localdate()
        if grace_days is None:
            grace_days = settings.INSTALLMENT_GRACE_DAYS
        cutoff = today - timedelta(days=grace_days)

        count = (
            InstallmentPlan.objects
            .filter(status=PlanStatus.ACTIVE, next_due_date__lt=cutoff)
            .update(status=PlanStatus.DEFAULTED, updated_at=timezone.now())
        )
        if count:
            logger.warning(f"{count} installment plan(s) marked defaulted (due before {cutoff})")
        return count

    @staticmethod
    def list_for_admin(filters=None):
        filters = filters or {}
        qs = InstallmentPlan.objects.select_related("user", "course")
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("payment_plan"):
            qs = qs.filter(payment_plan=filters["payment_plan"])
        if filters.get("user"):
            qs = qs.filter(user_id=filters["user"])
        if filters.get("course"):
            qs = qs.filter(course_id=filters["course"])
        return qs.order_by("-created_at", "-id")
