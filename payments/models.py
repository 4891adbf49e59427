from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import models
from django.db.models import Q

from .exceptions import InvalidTransition


class PaymentType(models.TextChoices):
    APPLICATION_FEE = "application_fee", "Application fee"
    COURSE_FEE = "course_fee", "Course fee"
    INSTALLMENT = "installment", "Installment"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


TERMINAL_PAYMENT_STATUSES = frozenset({
    PaymentStatus.SUCCESS, PaymentStatus.FAILED, PaymentStatus.CANCELLED,
})

# pending -> any terminal status, exactly once
PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: TERMINAL_PAYMENT_STATUSES,
    PaymentStatus.SUCCESS: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}


def check_payment_transition(current, new, reference=None):
    """Raise InvalidTransition unless ``current -> new`` is allowed."""
    if new not in PAYMENT_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Payment cannot move from {current} to {new}.",
            reference=reference, current_status=current, requested_status=new,
        )


class PlanCadence(models.TextChoices):
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly"
    QUARTERLY = "quarterly", "Quarterly"


CADENCE_STEP = {
    PlanCadence.WEEKLY: relativedelta(weeks=1),
    PlanCadence.MONTHLY: relativedelta(months=1),
    PlanCadence.QUARTERLY: relativedelta(months=3),
}


class PlanStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    DEFAULTED = "defaulted", "Defaulted"
    CANCELLED = "cancelled", "Cancelled"


class InstallmentPlan(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="installment_plans")
    course = models.ForeignKey("courses.Course", on_delete=models.PROTECT, related_name="installment_plans")

    total_course_fee = models.DecimalField(max_digits=12, decimal_places=2)
    application_fee_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    application_fee_paid = models.BooleanField(default=False)
    application_fee_reference = models.CharField(max_length=100, blank=True, default="")

    total_installments = models.PositiveSmallIntegerField()
    installment_amount = models.DecimalField(max_digits=12, decimal_places=2)
    paid_installments = models.PositiveSmallIntegerField(default=0)
    remaining_balance = models.DecimalField(max_digits=12, decimal_places=2)

    next_due_date = models.DateField(null=True, blank=True)
    payment_plan = models.CharField(max_length=20, choices=PlanCadence.choices, default=PlanCadence.MONTHLY)
    status = models.CharField(max_length=20, choices=PlanStatus.choices, default=PlanStatus.ACTIVE, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "course"],
                condition=~Q(status="cancelled"),
                name="unique_plan_per_course",
            ),
            models.CheckConstraint(
                condition=Q(remaining_balance__gte=0),
                name="plan_balance_not_negative",
            ),
            models.CheckConstraint(
                condition=Q(paid_installments__lte=models.F("total_installments")),
                name="plan_paid_within_total",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "next_due_date"], name="payments_in_status_6b0e1c_idx"),
            models.Index(fields=["payment_plan", "status"], name="payments_in_payment_3f2a9d_idx"),
        ]

    def expected_balance(self) -> Decimal:
        """The balance implied by the plan's counters."""
        fee_paid = self.application_fee_amount if self.application_fee_paid else Decimal("0")
        return self.total_course_fee - fee_paid - self.paid_installments * self.installment_amount

    def recalculate(self):
        self.remaining_balance = self.expected_balance()
        if self.remaining_balance == 0:
            self.status = PlanStatus.COMPLETED

    def advance_due_date(self):
        if self.next_due_date:
            self.next_due_date = self.next_due_date + CADENCE_STEP[self.payment_plan]

    @property
    def is_settled(self):
        return self.status == PlanStatus.COMPLETED

    def __str__(self):
        return f"Plan {self.pk} ({self.user_id}/{self.course_id}) {self.paid_installments}/{self.total_installments}"


class PaymentRecord(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="payments")
    course = models.ForeignKey("courses.Course", on_delete=models.PROTECT, related_name="payments")
    installment_plan = models.ForeignKey(
        InstallmentPlan, on_delete=models.PROTECT, related_name="payments", null=True, blank=True
    )

    reference = models.CharField(max_length=100, unique=True, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=settings.PAYMENT_CURRENCY)
    payment_type = models.CharField(max_length=20, choices=PaymentType.choices)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True)
    payment_method = models.CharField(max_length=50, blank=True, default="")

    installment_number = models.PositiveSmallIntegerField(null=True, blank=True)
    total_installments = models.PositiveSmallIntegerField(null=True, blank=True)

    # Paystack response data
    gateway = models.CharField(max_length=30, default="paystack")
    authorization_url = models.URLField(blank=True)
    gateway_response = models.JSONField(null=True, blank=True)

    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["payment_type", "status"], name="payments_pa_payment_8c1d4e_idx"),
            models.Index(fields=["user", "course"], name="payments_pa_user_id_5a7b2f_idx"),
        ]

    @property
    def is_terminal(self):
        return self.status in TERMINAL_PAYMENT_STATUSES

    def __str__(self):
        return f"{self.reference} - {self.amount} - {self.status}"


class PaymentEvent(models.Model):
    """
    Append-only log of every gateway event we processed or rejected.
    """
    OUTCOME_CHOICES = [
        ("applied", "Applied"),
        ("replayed", "Replayed"),
        ("ignored", "Ignored"),
        ("rejected", "Rejected"),
    ]

    payment = models.ForeignKey(PaymentRecord, on_delete=models.PROTECT, related_name="events", null=True, blank=True)
    reference = models.CharField(max_length=100, db_index=True)
    gateway = models.CharField(max_length=30)
    outcome = models.CharField(max_length=20, choices=OUTCOME_CHOICES)
    error_code = models.CharField(max_length=50, blank=True, default="")

    old_status = models.CharField(max_length=20, blank=True, default="")
    new_status = models.CharField(max_length=20, blank=True, default="")
    payload = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.reference} {self.outcome} {self.old_status}->{self.new_status}"
