import pytest
from decimal import Decimal

from payments.exceptions import DuplicateReference, InvalidTransition, NotFound
from payments.models import PaymentRecord, TERMINAL_PAYMENT_STATUSES, PaymentStatus
from payments.services import PaymentRecordStore


pytestmark = pytest.mark.django_db


def test_create_pending(student, course):
    record = PaymentRecordStore.create_pending(
        user=student, course=course, amount=Decimal("1000.00"),
        payment_type="course_fee", reference="R-STORE-1",
    )

    assert record.status == PaymentStatus.PENDING
    assert record.paid_at is None
    assert PaymentRecordStore.get("R-STORE-1") == record


def test_duplicate_reference_is_rejected(student, course):
    PaymentRecordStore.create_pending(
        user=student, course=course, amount=Decimal("1000.00"),
        payment_type="course_fee", reference="R-DUP",
    )

    with pytest.raises(DuplicateReference) as exc:
        PaymentRecordStore.create_pending(
            user=student, course=course, amount=Decimal("500.00"),
            payment_type="course_fee", reference="R-DUP",
        )

    assert exc.value.context["reference"] == "R-DUP"
    assert PaymentRecord.objects.filter(reference="R-DUP").count() == 1


def test_get_unknown_reference():
    with pytest.raises(NotFound):
        PaymentRecordStore.get("R-NOPE")


def test_transition_to_success_sets_paid_at(payment_record_factory, student, course):
    record = payment_record_factory(user=student, course=course)

    PaymentRecordStore.transition(record, PaymentStatus.SUCCESS, payment_method="card")
    record.refresh_from_db()

    assert record.status == PaymentStatus.SUCCESS
    assert record.paid_at is not None
    assert record.payment_method == "card"


@pytest.mark.parametrize("terminal", sorted(TERMINAL_PAYMENT_STATUSES))
@pytest.mark.parametrize("target", PaymentStatus.values)
def test_terminal_records_never_change(payment_record_factory, student, course, terminal, target):
    record = payment_record_factory(user=student, course=course, status=terminal)

    with pytest.raises(InvalidTransition):
        PaymentRecordStore.transition(record, target)

    record.refresh_from_db()
    assert record.status == terminal


def test_pending_to_pending_is_not_a_transition(payment_record_factory, student, course):
    record = payment_record_factory(user=student, course=course)

    with pytest.raises(InvalidTransition):
        PaymentRecordStore.transition(record, PaymentStatus.PENDING)


def test_list_for_admin_filters_and_orders(payment_record_factory, student, other_student, course):
    payment_record_factory(user=student, course=course, amount=Decimal("300.00"), status="success")
    payment_record_factory(user=student, course=course, amount=Decimal("100.00"), status="success")
    payment_record_factory(user=other_student, course=course, amount=Decimal("200.00"), status="failed")

    success = PaymentRecordStore.list_for_admin({"status": "success"}, "amount")
    assert [r.amount for r in success] == [Decimal("100.00"), Decimal("300.00")]

    by_user = PaymentRecordStore.list_for_admin({"user": other_student.pk})
    assert [r.status for r in by_user] == ["failed"]


def test_list_for_admin_ignores_unknown_ordering(payment_record_factory, student, course):
    first = payment_record_factory(user=student, course=course)
    second = payment_record_factory(user=student, course=course)

    records = list(PaymentRecordStore.list_for_admin({}, "user__password"))

    assert records == [second, first]


def test_list_for_user_only_returns_own_payments(payment_record_factory, student, other_student, course):
    mine = payment_record_factory(user=student, course=course)
    payment_record_factory(user=other_student, course=course)

    assert list(PaymentRecordStore.list_for_user(student)) == [mine]
