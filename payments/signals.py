from django.dispatch import Signal

# sent with sender=InstallmentPlan, plan=<InstallmentPlan> once its balance reaches zero
plan_completed = Signal()
