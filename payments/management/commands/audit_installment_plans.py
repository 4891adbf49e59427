from django.core.management.base import BaseCommand
from django.db import transaction

from payments.models import InstallmentPlan, PlanStatus
from payments.signals import plan_completed


def find_drift(batch_size=2000):
    """Plans whose stored balance or status disagrees with their counters."""
    drifted = []
    qs = InstallmentPlan.objects.exclude(status=PlanStatus.CANCELLED).order_by("id")
    for plan in qs.iterator(chunk_size=batch_size):
        expected = plan.expected_balance()
        status_ok = (plan.status == PlanStatus.COMPLETED) == (expected == 0)
        if plan.remaining_balance != expected or not status_ok:
            drifted.append((plan, expected))
    return drifted


@transaction.atomic
def fix_drift(drifted, batch_size=2000):
    """
    Rewrites drifted plans from their counters. Each plan is re-read under a
    row lock, so a payment applied since ``find_drift`` is not overwritten.
    """
    fixed, skipped, completed = [], [], []
    for stale, _ in drifted:
        plan = InstallmentPlan.objects.select_for_update().get(pk=stale.pk)
        expected = plan.expected_balance()
        # a negative balance or a reopened plan needs a human
        if expected < 0 or (plan.status == PlanStatus.COMPLETED and expected > 0):
            skipped.append(plan)
            continue
        if plan.remaining_balance == expected and plan.is_settled == (expected == 0):
            continue
        plan.remaining_balance = expected
        if expected == 0 and plan.status != PlanStatus.COMPLETED:
            plan.status = PlanStatus.COMPLETED
            completed.append(plan)
        fixed.append(plan)

    InstallmentPlan.objects.bulk_update(fixed, ["remaining_balance", "status"], batch_size=batch_size)
    for plan in completed:
        plan_completed.send(sender=InstallmentPlan, plan=plan)
    return fixed, skipped


class Command(BaseCommand):
    help = "Check every installment plan's balance against its paid installments and application fee."

    def add_arguments(self, parser):
        parser.add_argument("--fix", action="store_true", help="Rewrite drifted balances.")
        parser.add_argument("--batch-size", type=int, default=2000)

    def handle(self, *args, **options):
        drifted = find_drift(options["batch_size"])
        if not drifted:
            self.stdout.write(self.style.SUCCESS("All installment plans balance."))
            return

        for plan, expected in drifted:
            self.stdout.write(
                f"Plan {plan.pk}: stored {plan.remaining_balance} ({plan.status}), expected {expected}"
            )

        if not options["fix"]:
            self.stdout.write(self.style.WARNING(f"{len(drifted)} plan(s) drifted. Run with --fix to repair."))
            return

        fixed, skipped = fix_drift(drifted, options["batch_size"])
        self.stdout.write(self.style.SUCCESS(f"{len(fixed)} plan(s) repaired."))
        if skipped:
            ids = ", ".join(str(plan.pk) for plan in skipped)
            self.stdout.write(self.style.ERROR(f"Needs manual review: {ids}"))


# Run with: python manage.py audit_installment_plans --fix
