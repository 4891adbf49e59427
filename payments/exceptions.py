"""
Error taxonomy for payment reconciliation.

Every error carries a stable ``code`` (returned to API callers), the HTTP
status views should answer with, and a ``context`` dict with enough detail
(reference, statuses, amounts) for manual reconciliation.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class PaymentError(APIException):
    code = "payment_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Payment could not be processed."

    def __init__(self, detail=None, **context):
        super().__init__(detail or self.default_detail, code=self.code)
        self.context = context

    def as_dict(self):
        return {"error": self.code, "detail": str(self.detail), **{k: str(v) for k, v in self.context.items()}}


class NotFound(PaymentError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Payment record not found."


class DuplicateReference(PaymentError):
    code = "duplicate_reference"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A payment with this reference already exists."


class InvalidTransition(PaymentError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This status change is not allowed."


class UnknownReference(PaymentError):
    code = "unknown_reference"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "No payment matches this reference."


class ConflictingTransition(PaymentError):
    code = "conflicting_transition"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Payment already settled with a different status."


class AmountMismatch(PaymentError):
    code = "amount_mismatch"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Paid amount does not match the expected amount."


class PlanNotActive(PaymentError):
    code = "plan_not_active"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Installment plan is not active."


class PlanAlreadyExists(PaymentError):
    code = "plan_already_exists"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "An installment plan already exists for this course."


class CourseAlreadyPaid(PaymentError):
    code = "course_already_paid"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The course fee has already been paid in full."


class OverpaymentRejected(PaymentError):
    code = "overpayment_rejected"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Payment would exceed the remaining balance."


class InvalidPlanTerms(PaymentError):
    code = "invalid_plan_terms"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Installment plan terms are invalid."


class InvalidSignature(PaymentError):
    code = "invalid_signature"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Webhook signature could not be verified."


class GatewayError(PaymentError):
    code = "gateway_error"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment gateway request failed."


class MalformedEvent(PaymentError):
    code = "malformed_event"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Webhook payload is missing required fields."
