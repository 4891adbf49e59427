from django.dispatch import receiver

from payments.models import InstallmentPlan
from payments.signals import plan_completed

from .services import RegistrationCoordinator


@receiver(plan_completed, sender=InstallmentPlan)
def complete_registration_on_plan_completed(sender, plan, **kwargs):
    # runs inside the caller's transaction so the registration moves with the balance
    RegistrationCoordinator.on_payment_completed(plan.user, plan.course)
