import factory

from payments.tests.factory import CourseFactory, UserFactory
from registrations.models import Registration


class RegistrationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Registration

    user = factory.SubFactory(UserFactory)
    course = factory.SubFactory(CourseFactory)
    status = "pending"
    payment_status = "unpaid"
