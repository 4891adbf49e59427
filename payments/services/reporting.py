"""
Read-only rollups for the admin dashboard, computed from the current rows on
every call.
"""
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.db.models.functions import ExtractMonth

from registrations.models import PaymentProgress, Registration, RegistrationStatus

from ..models import (
    InstallmentPlan, PaymentRecord, PaymentStatus, PaymentType, PlanCadence, PlanStatus,
)

ZERO = Decimal("0.00")


def _counts(qs, field, choices):
    """{choice: count} with every choice present, even at zero."""
    counts = {value: 0 for value in choices.values}
    for row in qs.values(field).annotate(n=Count("id")):
        counts[row[field]] = row["n"]
    return counts


def _money(value):
    return (value or ZERO).quantize(Decimal("0.01"))


class ReportingAggregator:

    @staticmethod
    def payment_summary(start=None, end=None):
        qs = PaymentRecord.objects.all()
        if start:
            qs = qs.filter(created_at__date__gte=start)
        if end:
            qs = qs.filter(created_at__date__lte=end)

        success = qs.filter(status=PaymentStatus.SUCCESS)
        revenue_by_type = {value: ZERO for value in PaymentType.values}
        for row in success.values("payment_type").annotate(total=Sum("amount")):
            revenue_by_type[row["payment_type"]] = _money(row["total"])

        return {
            "total_payments": qs.count(),
            "by_status": _counts(qs, "status", PaymentStatus),
            "by_type": _counts(qs, "payment_type", PaymentType),
            "total_revenue": _money(success.aggregate(total=Sum("amount"))["total"]),
            "pending_amount": _money(qs.filter(status=PaymentStatus.PENDING).aggregate(total=Sum("amount"))["total"]),
            "revenue_by_type": revenue_by_type,
        }

    @staticmethod
    def registration_summary():
        qs = Registration.objects.all()
        return {
            "total_registrations": qs.count(),
            "by_status": _counts(qs, "status", RegistrationStatus),
            "by_payment_status": _counts(qs, "payment_status", PaymentProgress),
        }

    @staticmethod
    def plan_summary():
        qs = InstallmentPlan.objects.all()
        by_cadence = {}
        for cadence in PlanCadence.values:
            by_cadence[cadence] = {status: 0 for status in PlanStatus.values}
        for row in qs.values("payment_plan", "status").annotate(n=Count("id")):
            by_cadence[row["payment_plan"]][row["status"]] = row["n"]

        totals = qs.aggregate(
            outstanding=Sum("remaining_balance", filter=Q(status__in=[PlanStatus.ACTIVE, PlanStatus.DEFAULTED])),
            defaulted=Sum("remaining_balance", filter=Q(status=PlanStatus.DEFAULTED)),
        )
        return {
            "total_plans": qs.count(),
            "by_status": _counts(qs, "status", PlanStatus),
            "by_cadence": by_cadence,
            "outstanding_balance": _money(totals["outstanding"]),
            "defaulted_balance": _money(totals["defaulted"]),
        }

    @staticmethod
    def monthly_revenue(year):
        """Successful payments of ``year`` grouped by the month they were paid."""
        months = {month: ZERO for month in range(1, 13)}
        rows = (
            PaymentRecord.objects
            .filter(status=PaymentStatus.SUCCESS, paid_at__year=year)
            .annotate(month=ExtractMonth("paid_at"))
            .values("month")
            .annotate(total=Sum("amount"), n=Count("id"))
        )
        counts = {month: 0 for month in months}
        for row in rows:
            months[row["month"]] = _money(row["total"])
            counts[row["month"]] = row["n"]

        return [
            {"month": month, "revenue": months[month], "payments": counts[month]}
            for month in range(1, 13)
        ]

    @classmethod
    def dashboard_stats(cls, start=None, end=None):
        return {
            "payments": cls.payment_summary(start, end),
            "registrations": cls.registration_summary(),
            "installment_plans": cls.plan_summary(),
        }
