import logging

from django.db import IntegrityError, transaction
from drf_spectacular.utils import OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers as s
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authflow.permissions import IsAdminRole, IsStudent
from courses.models import Course
from payments.exceptions import PaymentError
from payments.pagifications import StandardResultsSetPagination
from payments.views import error_response

from .models import Registration
from .serializers import (
    AdminRegistrationSerializer, BulkSetStatusSerializer, CreateRegistrationSerializer,
    RegistrationFilterSerializer, RegistrationSerializer, SetStatusSerializer,
)
from .services import RegistrationCoordinator

logger = logging.getLogger(__name__)


class RegistrationView(ListAPIView):
    """A student's own registrations; POST applies for a course."""
    permission_classes = [IsAuthenticated, IsStudent]
    serializer_class = RegistrationSerializer

    def get_queryset(self):
        return Registration.objects.filter(user=self.request.user).select_related("course")

    @extend_schema(request=CreateRegistrationSerializer, responses={201: RegistrationSerializer})
    def post(self, request):
        serializer = CreateRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = Course.objects.get(pk=serializer.validated_data["course_id"])

        try:
            with transaction.atomic():
                registration = Registration.objects.create(
                    user=request.user,
                    course=course,
                    notes=serializer.validated_data.get("notes", ""),
                    # fees paid before applying still count
                    payment_status=RegistrationCoordinator.payment_progress(request.user, course),
                )
        except IntegrityError:
            return Response(
                {"error": "already_registered", "detail": "You already applied for this course."},
                status=status.HTTP_409_CONFLICT,
            )

        logger.info(f"Registration {registration.pk} created for user {request.user.pk}, course {course.pk}")
        return Response(RegistrationSerializer(registration).data, status=status.HTTP_201_CREATED)


class RegistrationStatusView(APIView):
    permission_classes = [IsAdminRole]

    @extend_schema(request=SetStatusSerializer, responses={200: AdminRegistrationSerializer})
    def patch(self, request, registration_id):
        serializer = SetStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            registration = RegistrationCoordinator.admin_set_status(
                registration_id,
                serializer.validated_data["status"],
                note=serializer.validated_data["note"],
                actor=request.user,
            )
        except PaymentError as exc:
            return error_response(exc)

        return Response(AdminRegistrationSerializer(registration).data)


@extend_schema(
    request=BulkSetStatusSerializer,
    responses={200: inline_serializer("BulkStatusResponse", fields={
        "succeeded": s.IntegerField(),
        "failed": s.IntegerField(),
        "results": s.ListField(child=s.DictField()),
    })},
)
class BulkRegistrationStatusView(APIView):
    """Each id is handled on its own; the response reports every one of them."""
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = BulkSetStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        results = RegistrationCoordinator.bulk_set_status(
            data["ids"], data["status"], note=data["note"], actor=request.user,
        )
        succeeded = sum(1 for result in results if result.ok)
        return Response({
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
            "results": [result.as_dict() for result in results],
        })


@extend_schema(parameters=[
    OpenApiParameter("status", str), OpenApiParameter("payment_status", str), OpenApiParameter("course", int),
])
class AdminRegistrationListView(ListAPIView):
    permission_classes = [IsAdminRole]
    serializer_class = AdminRegistrationSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        filters = RegistrationFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        qs = Registration.objects.select_related("user", "course")
        for field in ("status", "payment_status"):
            if filters.validated_data.get(field):
                qs = qs.filter(**{field: filters.validated_data[field]})
        if filters.validated_data.get("course"):
            qs = qs.filter(course_id=filters.validated_data["course"])
        return qs.order_by("-created_at", "-id")
