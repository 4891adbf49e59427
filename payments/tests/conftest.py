import pytest
from decimal import Decimal
from pytest_factoryboy import register
from rest_framework.test import APIClient

from payments.services import InstallmentPlanTracker
from registrations.tests.factory import RegistrationFactory
from .factory import (
    UserFactory, CourseFactory, InstallmentPlanFactory, PaymentRecordFactory,
)

# Register all factories as pytest fixtures
register(UserFactory)
register(CourseFactory)
register(InstallmentPlanFactory)
register(PaymentRecordFactory)
register(RegistrationFactory)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def student(user_factory):
    return user_factory(email="ada@example.com", name="Ada")


@pytest.fixture
def other_student(user_factory):
    return user_factory(email="bola@example.com", name="Bola")


@pytest.fixture
def admin_user(user_factory):
    return user_factory(email="admin@example.com", name="Admin", role="admin")


@pytest.fixture
def course(course_factory):
    """1000 course fee, no application fee"""
    return course_factory(title="Data Analysis", slug="data-analysis")


@pytest.fixture
def course_with_fee(course_factory):
    """1000 course fee of which 200 is the application fee"""
    return course_factory(
        title="Web Development", slug="web-development",
        course_fee=Decimal("1000.00"), application_fee=Decimal("200.00"),
    )


@pytest.fixture
def plan(student, course):
    """4 x 250 monthly"""
    return InstallmentPlanTracker.create_plan(
        user=student, course=course, total_fee=course.course_fee, total_installments=4,
    )


@pytest.fixture
def plan_with_fee(student, course_with_fee):
    """200 application fee + 4 x 200 monthly"""
    return InstallmentPlanTracker.create_plan(
        user=student, course=course_with_fee, total_fee=course_with_fee.course_fee,
        total_installments=4, application_fee=course_with_fee.application_fee,
    )


@pytest.fixture
def installment_records(payment_record_factory, student, course, plan):
    """One pending record per installment of ``plan``"""
    return [
        payment_record_factory(
            user=student, course=course, installment_plan=plan, reference=f"R-INST-{n}",
            amount=plan.installment_amount, payment_type="installment",
            installment_number=n, total_installments=plan.total_installments,
        )
        for n in range(1, plan.total_installments + 1)
    ]
