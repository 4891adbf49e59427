import pytest
from django.urls import reverse

from registrations.models import Registration
from .utils import authenticate


pytestmark = pytest.mark.django_db


@pytest.fixture
def admin_client(api_client, admin_user):
    return authenticate(api_client, admin_user)


def test_admin_approves_registration(admin_client, registration_factory, admin_user):
    registration = registration_factory(status="pending")

    response = admin_client.patch(
        reverse("registration-status", args=[registration.pk]),
        {"status": "approved", "note": "welcome"},
        format="json",
    )

    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["reviewed_by"] == admin_user.pk


def test_completed_registration_cannot_go_back_to_approved(admin_client, registration_factory):
    registration = registration_factory(status="completed")

    response = admin_client.patch(
        reverse("registration-status", args=[registration.pk]), {"status": "approved"}, format="json",
    )

    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"
    registration.refresh_from_db()
    assert registration.status == "completed"


def test_status_change_requires_admin(api_client, student, registration_factory):
    registration = registration_factory(user=student, status="pending")
    authenticate(api_client, student)

    response = api_client.patch(
        reverse("registration-status", args=[registration.pk]), {"status": "approved"}, format="json",
    )

    assert response.status_code == 403


def test_unknown_registration(admin_client):
    response = admin_client.patch(reverse("registration-status", args=[999999]), {"status": "approved"}, format="json")

    assert response.status_code == 404


def test_bulk_status_partial_failure(admin_client, registration_factory):
    ok = registration_factory(status="pending")
    bad = registration_factory(status="rejected")

    response = admin_client.post(
        reverse("registration-bulk-status"),
        {"ids": [ok.pk, bad.pk], "status": "approved"},
        format="json",
    )

    assert response.status_code == 200
    data = response.json()
    assert data["succeeded"] == 1
    assert data["failed"] == 1
    assert data["results"][1]["error"] == "invalid_transition"
    ok.refresh_from_db()
    assert ok.status == "approved"


def test_bulk_status_needs_ids(admin_client):
    response = admin_client.post(reverse("registration-bulk-status"), {"ids": [], "status": "approved"}, format="json")

    assert response.status_code == 400


def test_student_applies_for_course(api_client, student, course):
    authenticate(api_client, student)

    response = api_client.post(reverse("registrations"), {"course_id": course.pk}, format="json")

    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    assert response.json()["payment_status"] == "unpaid"

    again = api_client.post(reverse("registrations"), {"course_id": course.pk}, format="json")
    assert again.status_code == 409
    assert Registration.objects.filter(user=student, course=course).count() == 1


def test_student_applies_after_paying(api_client, student, course, payment_record_factory):
    payment_record_factory(user=student, course=course, status="success")
    authenticate(api_client, student)

    response = api_client.post(reverse("registrations"), {"course_id": course.pk}, format="json")

    assert response.json()["payment_status"] == "paid"


def test_student_lists_own_registrations(api_client, student, registration_factory, course):
    mine = registration_factory(user=student, course=course)
    registration_factory()
    authenticate(api_client, student)

    response = api_client.get(reverse("registrations"))

    assert [r["id"] for r in response.json()] == [mine.pk]


def test_admin_lists_registrations(admin_client, registration_factory):
    registration_factory(status="pending")
    registration_factory(status="approved")

    response = admin_client.get(reverse("admin-registrations"), {"status": "approved"})

    assert response.status_code == 200
    assert response.json()["count"] == 1
