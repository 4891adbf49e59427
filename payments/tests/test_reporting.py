import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from django.utils import timezone

from payments.services import ReportingAggregator


pytestmark = pytest.mark.django_db


def test_payment_summary(payment_record_factory, student, course):
    payment_record_factory(user=student, course=course, status="success")
    payment_record_factory(user=student, course=course, status="success", payment_type="installment",
                           amount=Decimal("250.00"))
    payment_record_factory(user=student, course=course, status="pending", amount=Decimal("250.00"))
    payment_record_factory(user=student, course=course, status="failed")

    summary = ReportingAggregator.payment_summary()

    assert summary["total_payments"] == 4
    assert summary["by_status"] == {"pending": 1, "success": 2, "failed": 1, "cancelled": 0}
    assert summary["by_type"]["course_fee"] == 3
    assert summary["total_revenue"] == Decimal("1250.00")
    assert summary["pending_amount"] == Decimal("250.00")
    assert summary["revenue_by_type"] == {
        "application_fee": Decimal("0.00"),
        "course_fee": Decimal("1000.00"),
        "installment": Decimal("250.00"),
    }


def test_payment_summary_date_range(payment_record_factory, student, course):
    old = payment_record_factory(user=student, course=course, status="success")
    payment_record_factory(user=student, course=course, status="success")
    old.__class__.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=40))

    summary = ReportingAggregator.payment_summary(start=timezone.localdate() - timedelta(days=7))

    assert summary["total_payments"] == 1
    assert summary["total_revenue"] == Decimal("1000.00")


def test_summary_reflects_current_state(payment_record_factory, student, course):
    record = payment_record_factory(user=student, course=course)
    assert ReportingAggregator.payment_summary()["total_revenue"] == Decimal("0.00")

    record.status = "success"
    record.save()

    assert ReportingAggregator.payment_summary()["total_revenue"] == Decimal("1000.00")


def test_registration_summary(registration_factory, user_factory, course):
    registration_factory(user=user_factory(), course=course, status="pending")
    registration_factory(user=user_factory(), course=course, status="completed", payment_status="paid")

    summary = ReportingAggregator.registration_summary()

    assert summary["total_registrations"] == 2
    assert summary["by_status"] == {"pending": 1, "approved": 0, "rejected": 0, "completed": 1}
    assert summary["by_payment_status"]["paid"] == 1


def test_plan_summary(installment_plan_factory, user_factory, course):
    installment_plan_factory(user=user_factory(), course=course, payment_plan="weekly")
    installment_plan_factory(
        user=user_factory(), course=course, status="defaulted",
        paid_installments=1, remaining_balance=Decimal("750.00"),
    )
    installment_plan_factory(
        user=user_factory(), course=course, status="completed",
        paid_installments=4, remaining_balance=Decimal("0.00"),
    )

    summary = ReportingAggregator.plan_summary()

    assert summary["total_plans"] == 3
    assert summary["by_cadence"]["weekly"]["active"] == 1
    assert summary["by_cadence"]["monthly"] == {"active": 0, "completed": 1, "defaulted": 1, "cancelled": 0}
    assert summary["outstanding_balance"] == Decimal("1750.00")
    assert summary["defaulted_balance"] == Decimal("750.00")


def test_monthly_revenue(payment_record_factory, student, course):
    def paid(month, amount):
        payment_record_factory(
            user=student, course=course, status="success", amount=Decimal(amount),
            paid_at=timezone.make_aware(datetime(2025, month, 15, 12, 0)),
        )

    paid(1, "1000.00")
    paid(1, "250.00")
    paid(6, "250.00")
    payment_record_factory(
        user=student, course=course, status="success",
        paid_at=timezone.make_aware(datetime(2024, 1, 15, 12, 0)),
    )

    months = ReportingAggregator.monthly_revenue(2025)

    assert months[0] == {"month": 1, "revenue": Decimal("1250.00"), "payments": 2}
    assert months[5]["revenue"] == Decimal("250.00")
    assert months[11] == {"month": 12, "revenue": Decimal("0.00"), "payments": 0}
