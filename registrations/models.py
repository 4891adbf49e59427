from django.conf import settings
from django.db import models

from payments.exceptions import InvalidTransition


class RegistrationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    COMPLETED = "completed", "Completed"


class PaymentProgress(models.TextChoices):
    UNPAID = "unpaid", "Unpaid"
    PARTIAL = "partial", "Partial"
    PAID = "paid", "Paid"


# what an admin may do by hand; approved -> completed belongs to the coordinator
ADMIN_TRANSITIONS = {
    RegistrationStatus.PENDING: frozenset({RegistrationStatus.APPROVED, RegistrationStatus.REJECTED}),
    RegistrationStatus.APPROVED: frozenset({RegistrationStatus.REJECTED}),
    RegistrationStatus.REJECTED: frozenset(),
    RegistrationStatus.COMPLETED: frozenset(),
}


def check_admin_transition(current, new, registration_id=None):
    if new not in ADMIN_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Registration cannot move from {current} to {new}.",
            registration=registration_id, current_status=current, requested_status=new,
        )


class Registration(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="registrations")
    course = models.ForeignKey("courses.Course", on_delete=models.CASCADE, related_name="registrations")

    status = models.CharField(
        max_length=20, choices=RegistrationStatus.choices, default=RegistrationStatus.PENDING, db_index=True
    )
    payment_status = models.CharField(max_length=20, choices=PaymentProgress.choices, default=PaymentProgress.UNPAID)
    notes = models.TextField(blank=True, default="")

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="reviewed_registrations"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "course"], name="unique_registration_per_course"),
        ]

    def add_note(self, note):
        if note:
            self.notes = f"{self.notes}\n{note}".strip()

    def __str__(self):
        return f"{self.user_id} -> course {self.course_id}: {self.status}"
