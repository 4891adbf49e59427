import pytest
from decimal import Decimal
from unittest.mock import patch
from django.urls import reverse

from payments.exceptions import GatewayError
from payments.models import InstallmentPlan, PaymentRecord, PaymentStatus
from payments.services import WebhookReconciler
from .utils import authenticate, gateway_event


pytestmark = pytest.mark.django_db

CHECKOUT = {
    "authorization_url": "https://checkout.paystack.com/abc123",
    "access_code": "abc123",
}


@pytest.fixture
def student_client(api_client, student):
    return authenticate(api_client, student)


@pytest.fixture
def paystack_initialize():
    with patch("payments.views.student.initialize_paystack_transaction") as initialize:
        initialize.side_effect = lambda **kwargs: {**CHECKOUT, "reference": kwargs["reference"]}
        yield initialize


# ===== initialize =====

def test_initialize_course_fee(student_client, course, paystack_initialize):
    response = student_client.post(
        reverse("payment-initialize"), {"course_id": course.id, "payment_type": "course_fee"}, format="json",
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    record = PaymentRecord.objects.get(reference=data["reference"])
    assert record.status == PaymentStatus.PENDING
    assert record.amount == Decimal("1000.00")
    assert record.authorization_url == CHECKOUT["authorization_url"]
    assert data["websocket_path"] == f"/ws/payments/{record.reference}/"

    kwargs = paystack_initialize.call_args.kwargs
    assert kwargs["amount"] == Decimal("1000.00")
    assert kwargs["email"] == "ada@example.com"


def test_initialize_installment(student_client, course, plan, paystack_initialize):
    response = student_client.post(
        reverse("payment-initialize"), {"course_id": course.id, "payment_type": "installment"}, format="json",
    )

    assert response.status_code == 201, response.json()
    record = PaymentRecord.objects.get(reference=response.json()["reference"])
    assert record.amount == Decimal("250.00")
    assert record.installment_plan_id == plan.id
    assert record.installment_number == 1
    assert record.total_installments == 4


def test_installment_without_plan(student_client, course, paystack_initialize):
    response = student_client.post(
        reverse("payment-initialize"), {"course_id": course.id, "payment_type": "installment"}, format="json",
    )

    assert response.status_code == 409
    assert response.json()["error"] == "plan_not_active"
    assert not PaymentRecord.objects.exists()
    paystack_initialize.assert_not_called()


def test_installment_before_application_fee(student_client, course_with_fee, plan_with_fee, paystack_initialize):
    response = student_client.post(
        reverse("payment-initialize"),
        {"course_id": course_with_fee.id, "payment_type": "installment"},
        format="json",
    )

    assert response.status_code == 400
    assert not PaymentRecord.objects.exists()


def test_course_fee_already_paid(student_client, payment_record_factory, student, course, paystack_initialize):
    payment_record_factory(user=student, course=course, status="success")

    response = student_client.post(
        reverse("payment-initialize"), {"course_id": course.id, "payment_type": "course_fee"}, format="json",
    )

    assert response.status_code == 400


def test_course_fee_after_completed_plan(student_client, installment_plan_factory, student, course,
                                         paystack_initialize):
    installment_plan_factory(
        user=student, course=course, status="completed", paid_installments=4, remaining_balance=Decimal("0.00"),
    )

    response = student_client.post(
        reverse("payment-initialize"), {"course_id": course.id, "payment_type": "course_fee"}, format="json",
    )

    assert response.status_code == 400
    assert not PaymentRecord.objects.exists()
    paystack_initialize.assert_not_called()


def test_gateway_failure_is_recorded(student_client, course):
    with patch("payments.views.student.initialize_paystack_transaction", side_effect=GatewayError("Paystack down")):
        response = student_client.post(
            reverse("payment-initialize"), {"course_id": course.id, "payment_type": "course_fee"}, format="json",
        )

    assert response.status_code == 502
    assert response.json()["error"] == "gateway_error"
    assert PaymentRecord.objects.get().status == PaymentStatus.FAILED


def test_initialize_requires_student(api_client, admin_user, course):
    authenticate(api_client, admin_user)

    response = api_client.post(
        reverse("payment-initialize"), {"course_id": course.id, "payment_type": "course_fee"}, format="json",
    )

    assert response.status_code == 403


def test_initialize_requires_login(api_client, course):
    response = api_client.post(
        reverse("payment-initialize"), {"course_id": course.id, "payment_type": "course_fee"}, format="json",
    )

    assert response.status_code == 401


# ===== installment plans =====

def test_create_installment_plan(student_client, course_with_fee):
    response = student_client.post(
        reverse("installment-plan-create"),
        {"course_id": course_with_fee.id, "total_installments": 4, "payment_plan": "weekly"},
        format="json",
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    assert Decimal(data["installment_amount"]) == Decimal("200.00")
    assert Decimal(data["remaining_balance"]) == Decimal("1000.00")
    assert data["payment_plan"] == "weekly"
    assert data["remaining_installments"] == 4


def test_create_second_plan(student_client, course, plan):
    response = student_client.post(
        reverse("installment-plan-create"), {"course_id": course.id, "total_installments": 2}, format="json",
    )

    assert response.status_code == 409
    assert response.json()["error"] == "plan_already_exists"
    assert InstallmentPlan.objects.count() == 1


def test_second_plan_after_paying_off_the_first(student_client, course, plan, installment_records):
    reconciler = WebhookReconciler()
    for record in installment_records:
        reconciler.reconcile(gateway_event(record.reference, amount="250.00"))

    response = student_client.post(
        reverse("installment-plan-create"), {"course_id": course.id, "total_installments": 4}, format="json",
    )

    assert response.status_code == 409
    assert response.json()["error"] == "plan_already_exists"
    assert InstallmentPlan.objects.filter(course=course).count() == 1


def test_plan_after_course_fee_paid(student_client, payment_record_factory, student, course):
    payment_record_factory(user=student, course=course, reference="R-FULL", status="success")

    response = student_client.post(
        reverse("installment-plan-create"), {"course_id": course.id, "total_installments": 4}, format="json",
    )

    assert response.status_code == 409
    assert response.json()["error"] == "course_already_paid"
    assert not InstallmentPlan.objects.exists()


def test_course_without_installments(student_client, course_factory):
    course = course_factory(offers_installments=False)

    response = student_client.post(
        reverse("installment-plan-create"), {"course_id": course.id, "total_installments": 2}, format="json",
    )

    assert response.status_code == 400


def test_uneven_installments(student_client, course):
    response = student_client.post(
        reverse("installment-plan-create"), {"course_id": course.id, "total_installments": 3}, format="json",
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_plan_terms"


# ===== my payments / verify =====

def test_my_payments(student_client, payment_record_factory, student, other_student, course):
    mine = payment_record_factory(user=student, course=course)
    payment_record_factory(user=other_student, course=course)

    response = student_client.get(reverse("my-payments"))

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["results"][0]["reference"] == mine.reference


def test_my_installment_plans(student_client, plan):
    response = student_client.get(reverse("my-installment-plans"))

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [plan.id]


def test_verify_pending_payment(student_client, payment_record_factory, student, course):
    record = payment_record_factory(user=student, course=course, reference="R-VERIFY")
    transaction = {"reference": "R-VERIFY", "status": "success", "amount": 100000, "currency": "NGN"}

    with patch("payments.services.reconciler.verify_paystack_transaction", return_value=transaction):
        response = student_client.get(reverse("payment-verify", args=[record.reference]))

    assert response.status_code == 200
    assert response.json()["outcome"] == "applied"
    assert response.json()["payment"]["status"] == "success"


def test_verify_settled_payment_skips_gateway(student_client, payment_record_factory, student, course):
    record = payment_record_factory(user=student, course=course, status="failed")

    with patch("payments.services.reconciler.verify_paystack_transaction") as verify:
        response = student_client.get(reverse("payment-verify", args=[record.reference]))

    verify.assert_not_called()
    assert response.json()["outcome"] == "settled"


def test_verify_someone_elses_payment(student_client, payment_record_factory, other_student, course):
    record = payment_record_factory(user=other_student, course=course)

    response = student_client.get(reverse("payment-verify", args=[record.reference]))

    assert response.status_code == 404
