import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers as s
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authflow.permissions import IsStudent

from ..exceptions import GatewayError, OverpaymentRejected, PaymentError, PlanNotActive
from ..models import PaymentRecord, PaymentStatus, PaymentType
from ..pagifications import StandardResultsSetPagination
from ..serializers import (
    CreateInstallmentPlanSerializer, InitializePaymentSerializer,
    InstallmentPlanSerializer, PaymentRecordSerializer,
)
from ..services import InstallmentPlanTracker, PaymentRecordStore, WebhookReconciler
from ..services.paystack import initialize_paystack_transaction, new_reference
from . import error_response

logger = logging.getLogger(__name__)


@extend_schema(
    request=InitializePaymentSerializer,
    responses={201: inline_serializer("InitializePaymentResponse", fields={
        "reference": s.CharField(),
        "authorization_url": s.URLField(),
        "access_code": s.CharField(),
        "amount": s.DecimalField(max_digits=12, decimal_places=2),
        "currency": s.CharField(),
        "payment_type": s.CharField(),
        "websocket_path": s.CharField(),
    })},
)
class InitializePaymentView(APIView):
    """
    Starts a Paystack charge. The amount is computed here from the course or
    the active plan, the pending record is written before Paystack is called.
    """
    permission_classes = [IsAuthenticated, IsStudent]

    def post(self, request):
        serializer = InitializePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.user
        course = serializer.validated_data["course"]
        payment_type = serializer.validated_data["payment_type"]

        try:
            terms = self.payment_terms(user, course, payment_type)
            reference = new_reference()
            record = PaymentRecordStore.create_pending(
                user=user, course=course, payment_type=payment_type, reference=reference,
                currency=course.currency, **terms,
            )
            data = self.start_charge(record, serializer.validated_data.get("email") or user.email)
        except PaymentError as exc:
            return error_response(exc)

        return Response(
            {
                "reference": record.reference,
                "authorization_url": data.get("authorization_url"),
                "access_code": data.get("access_code"),
                "amount": record.amount,
                "currency": record.currency,
                "payment_type": record.payment_type,
                "websocket_path": f"/ws/payments/{record.reference}/",
            },
            status=status.HTTP_201_CREATED,
        )

    def payment_terms(self, user, course, payment_type):
        already_paid = PaymentRecord.objects.filter(
            user=user, course=course, payment_type=payment_type, status=PaymentStatus.SUCCESS,
        )
        plan = InstallmentPlanTracker.get_active_plan(user, course)

        if payment_type == PaymentType.APPLICATION_FEE:
            if already_paid.exists():
                raise ValidationError({"payment_type": "Application fee already paid."})
            return {"amount": course.application_fee, "installment_plan": plan}

        if payment_type == PaymentType.COURSE_FEE:
            if already_paid.exists():
                raise ValidationError({"payment_type": "Course fee already paid."})
            if InstallmentPlanTracker.has_plan(user, course):
                raise ValidationError({"payment_type": "Course is being paid through an installment plan."})
            return {"amount": course.course_fee}

        if plan is None:
            raise PlanNotActive("No active installment plan for this course.", course=course.pk)
        if plan.application_fee_amount > 0 and not plan.application_fee_paid:
            raise ValidationError({"payment_type": "Pay the application fee before the first installment."})
        if plan.paid_installments >= plan.total_installments:
            raise OverpaymentRejected(plan=plan.pk, remaining_balance=plan.remaining_balance)

        return {
            "amount": plan.installment_amount,
            "installment_plan": plan,
            "installment_number": plan.paid_installments + 1,
            "total_installments": plan.total_installments,
        }

    def start_charge(self, record, email):
        metadata = {
            "payment_type": record.payment_type,
            "course_id": record.course_id,
            "user_id": record.user_id,
            "installment_number": record.installment_number,
        }
        try:
            data = initialize_paystack_transaction(
                amount=record.amount, email=email, reference=record.reference,
                currency=record.currency, metadata=metadata,
            )
        except GatewayError as exc:
            # keep the attempt on record, it will never be paid
            PaymentRecordStore.transition(record, PaymentStatus.FAILED, gateway_response={"error": exc.detail})
            raise

        record.authorization_url = data.get("authorization_url") or ""
        record.save(update_fields=["authorization_url", "updated_at"])
        logger.info(f"Paystack charge {record.reference} initialized for user {record.user_id}")
        return data


class VerifyPaymentView(APIView):
    """
    Called by the payment callback page. Pending payments are checked with
    Paystack and reconciled, settled ones are returned as they are.
    """

    @extend_schema(responses={200: PaymentRecordSerializer})
    def get(self, request, reference):
        qs = PaymentRecord.objects.all()
        if not request.user.is_admin:
            qs = qs.filter(user=request.user)
        record = get_object_or_404(qs, reference=reference)

        outcome = "settled"
        if not record.is_terminal:
            try:
                result = WebhookReconciler().verify_and_reconcile(reference, allow_cancel=False)
            except PaymentError as exc:
                return error_response(exc)
            record, outcome = result.payment, result.outcome

        return Response({"outcome": outcome, "payment": PaymentRecordSerializer(record).data})


class InstallmentPlanCreateView(APIView):
    permission_classes = [IsAuthenticated, IsStudent]

    @extend_schema(request=CreateInstallmentPlanSerializer, responses={201: InstallmentPlanSerializer})
    def post(self, request):
        serializer = CreateInstallmentPlanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = serializer.validated_data["course"]

        try:
            plan = InstallmentPlanTracker.create_plan(
                user=request.user,
                course=course,
                total_fee=course.course_fee,
                total_installments=serializer.validated_data["total_installments"],
                cadence=serializer.validated_data["payment_plan"],
                application_fee=course.application_fee,
            )
        except PaymentError as exc:
            return error_response(exc)

        return Response(InstallmentPlanSerializer(plan).data, status=status.HTTP_201_CREATED)


class MyPaymentsView(ListAPIView):
    serializer_class = PaymentRecordSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return PaymentRecordStore.list_for_user(self.request.user)


class MyInstallmentPlansView(ListAPIView):
    serializer_class = InstallmentPlanSerializer

    def get_queryset(self):
        return self.request.user.installment_plans.select_related("course").order_by("-created_at")
