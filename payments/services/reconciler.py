"""
Maps gateway events onto payment state.

Validation (unknown reference, replays, conflicts, amount) runs first without
locks so bad events fail fast. The mutation itself re-reads the record under
``select_for_update`` and moves the payment, the plan and the registration in
one transaction.
"""
import logging
from dataclasses import dataclass, replace

from django.db import transaction

from registrations.services import RegistrationCoordinator

from ..exceptions import (
    AmountMismatch, ConflictingTransition, NotFound, PaymentError,
    PlanNotActive, UnknownReference,
)
from ..models import PaymentEvent, PaymentStatus, PaymentType
from ..websocket_utils import notify_payment_status
from .gateways import get_gateway
from .paystack import verify_paystack_transaction
from .plans import InstallmentPlanTracker
from .store import PaymentRecordStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    outcome: str
    payment: object
    plan: object = None
    registration: object = None

    def as_dict(self):
        data = {
            "status": self.outcome,
            "reference": self.payment.reference,
            "payment_status": self.payment.status,
        }
        if self.plan is not None:
            data["plan"] = {
                "id": self.plan.pk,
                "status": self.plan.status,
                "paid_installments": self.plan.paid_installments,
                "remaining_balance": str(self.plan.remaining_balance),
            }
        if self.registration is not None:
            data["registration_status"] = self.registration.status
        return data


class WebhookReconciler:
    APPLIED = "applied"
    REPLAYED = "replayed"
    IGNORED = "ignored"
    REJECTED = "rejected"

    def __init__(self, store=PaymentRecordStore, tracker=InstallmentPlanTracker,
                 coordinator=RegistrationCoordinator):
        self.store = store
        self.tracker = tracker
        self.coordinator = coordinator

    def reconcile(self, event) -> ReconcileResult:
        try:
            record = self.store.get(event.reference)
        except NotFound:
            logger.error(f"{event.gateway} event for unknown reference {event.reference} ({event.status})")
            self._audit(event, self.REJECTED, error=UnknownReference.code)
            raise UnknownReference(reference=event.reference)

        try:
            outcome = self._precheck(record, event)
            if outcome:
                self._audit(event, outcome, payment=record)
                return ReconcileResult(outcome, record)
            return self._apply(event)
        except PaymentError as exc:
            # the atomic block has rolled back by now, the audit row survives
            self._audit(event, self.REJECTED, payment=record, error=exc.code)
            raise

    def verify_and_reconcile(self, reference, *, allow_cancel=True) -> ReconcileResult:
        """
        Ask the gateway for the transaction and reconcile what it says.
        With ``allow_cancel=False`` an abandoned checkout is left pending,
        the student may still be on the payment page.
        """
        gateway = get_gateway("paystack")
        event = gateway.from_transaction(verify_paystack_transaction(reference))
        if event.status == PaymentStatus.CANCELLED and not allow_cancel:
            event = replace(event, status=PaymentStatus.PENDING)
        return self.reconcile(event)

    def _precheck(self, record, event):
        if record.is_terminal:
            if record.status == event.status:
                logger.info(f"Replayed {event.status} event for {record.reference}, nothing to do")
                return self.REPLAYED
            logger.error(
                f"Conflicting event for {record.reference}: stored {record.status}, "
                f"gateway says {event.status}"
            )
            raise ConflictingTransition(
                reference=record.reference, current_status=record.status, incoming_status=event.status,
            )

        if event.amount != record.amount or event.currency != record.currency:
            logger.warning(
                f"Amount mismatch for {record.reference}: expected {record.amount} {record.currency}, "
                f"got {event.amount} {event.currency}"
            )
            raise AmountMismatch(
                reference=record.reference,
                expected=f"{record.amount} {record.currency}",
                received=f"{event.amount} {event.currency}",
            )

        if event.status == PaymentStatus.PENDING:
            return self.IGNORED
        return None

    @transaction.atomic
    def _apply(self, event) -> ReconcileResult:
        record = self.store.get(event.reference, for_update=True)

        # a concurrent delivery may have settled it since the unlocked read
        outcome = self._precheck(record, event)
        if outcome:
            self._audit(event, outcome, payment=record)
            return ReconcileResult(outcome, record)

        old_status = record.status
        self.store.transition(
            record, event.status, gateway_response=event.raw, payment_method=event.payment_method,
        )

        plan = registration = None
        if record.status == PaymentStatus.SUCCESS:
            plan = self._settle(record)
            registration = self.coordinator.on_payment_completed(record.user, record.course)

        self._audit(event, self.APPLIED, payment=record, old_status=old_status)
        transaction.on_commit(lambda: notify_payment_status(record), robust=True)

        logger.info(f"Payment {record.reference} ({record.payment_type}): {old_status} -> {record.status}")
        return ReconcileResult(self.APPLIED, record, plan, registration)

    def _settle(self, record):
        if record.payment_type == PaymentType.APPLICATION_FEE:
            plan = record.installment_plan or self.tracker.get_active_plan(record.user, record.course)
            if plan is None:
                logger.info(f"Application fee {record.reference} paid before any plan exists")
                return None
            return self.tracker.mark_application_fee_paid(plan.pk, reference=record.reference)

        if record.payment_type == PaymentType.INSTALLMENT:
            if record.installment_plan_id is None:
                raise PlanNotActive("Installment payment is not linked to a plan.", reference=record.reference)
            return self.tracker.apply_installment_payment(record.installment_plan_id, record.amount)

        # course_fee: the registration picks it up from the payment itself
        return None

    @staticmethod
    def _audit(event, outcome, payment=None, error="", old_status=None):
        if old_status is None:
            old_status = payment.status if payment is not None else ""
        return PaymentEvent.objects.create(
            payment=payment,
            reference=event.reference,
            gateway=event.gateway,
            outcome=outcome,
            error_code=error,
            old_status=old_status,
            new_status=event.status,
            payload=event.raw,
        )
