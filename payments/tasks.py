"""
Celery tasks for overdue plans and stale pending payments
"""
import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from .exceptions import GatewayError, PaymentError
from .models import PaymentRecord, PaymentStatus
from .services import InstallmentPlanTracker, WebhookReconciler

logger = logging.getLogger(__name__)


@shared_task(name="payments.mark_overdue_installment_plans")
def mark_overdue_installment_plans():
    """
    Active plans more than INSTALLMENT_GRACE_DAYS past their due date
    become defaulted. Scheduled daily by celery beat.
    """
    count = InstallmentPlanTracker.mark_overdue_defaulted(timezone.localdate())
    return f"{count} installment plan(s) marked defaulted"


@shared_task(
    name="payments.reconcile_pending_payment",
    autoretry_for=(GatewayError,),
    retry_backoff=True,
    max_retries=3,
)
def reconcile_pending_payment(reference):
    """
    Ask Paystack about a payment we never got a webhook for and reconcile it.
    Gateway outages are retried, reconciliation errors are already audited.
    """
    try:
        result = WebhookReconciler().verify_and_reconcile(reference)
    except GatewayError:
        raise
    except PaymentError as exc:
        logger.error(f"Could not reconcile pending payment {reference}: {exc.code} {exc.context}")
        return exc.code

    logger.info(f"Pending payment {reference} reconciled: {result.outcome} ({result.payment.status})")
    return result.outcome


@shared_task(name="payments.sweep_stale_pending_payments")
def sweep_stale_pending_payments(batch_size=200):
    cutoff = timezone.now() - timedelta(minutes=settings.STALE_PAYMENT_MINUTES)
    references = list(
        PaymentRecord.objects
        .filter(status=PaymentStatus.PENDING, created_at__lt=cutoff)
        .order_by("created_at")
        .values_list("reference", flat=True)[:batch_size]
    )
    for reference in references:
        reconcile_pending_payment.delay(reference)

    if references:
        logger.info(f"Queued {len(references)} stale pending payment(s) for verification")
    return len(references)
