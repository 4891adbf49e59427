import pytest
from pytest_factoryboy import register
from rest_framework.test import APIClient

from payments.tests.factory import CourseFactory, PaymentRecordFactory, UserFactory
from .factory import RegistrationFactory

register(UserFactory)
register(CourseFactory)
register(PaymentRecordFactory)
register(RegistrationFactory)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def student(user_factory):
    return user_factory(email="ada@example.com", name="Ada")


@pytest.fixture
def admin_user(user_factory):
    return user_factory(email="admin@example.com", name="Admin", role="admin")


@pytest.fixture
def course(course_factory):
    return course_factory(title="Data Analysis", slug="data-analysis")
