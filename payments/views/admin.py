from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from authflow.permissions import IsAdminRole

from ..pagifications import StandardResultsSetPagination
from ..serializers import (
    AdminInstallmentPlanSerializer, AdminPaymentRecordSerializer,
    PaymentFilterSerializer, PlanFilterSerializer, StatsFilterSerializer,
)
from ..services import InstallmentPlanTracker, PaymentRecordStore, ReportingAggregator
from ..services.reporting import ZERO


def _filters(serializer_class, request):
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


@extend_schema(parameters=[
    OpenApiParameter("status", str), OpenApiParameter("payment_type", str),
    OpenApiParameter("user", int), OpenApiParameter("course", int),
    OpenApiParameter("reference", str),
    OpenApiParameter("created_after", str), OpenApiParameter("created_before", str),
    OpenApiParameter("ordering", str, description="created_at, amount, paid_at or status, '-' for descending"),
])
class AdminPaymentListView(ListAPIView):
    permission_classes = [IsAdminRole]
    serializer_class = AdminPaymentRecordSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        filters = dict(_filters(PaymentFilterSerializer, self.request))
        ordering = filters.pop("ordering", None)
        return PaymentRecordStore.list_for_admin(filters, ordering)


@extend_schema(parameters=[
    OpenApiParameter("status", str), OpenApiParameter("payment_plan", str),
    OpenApiParameter("user", int), OpenApiParameter("course", int),
])
class AdminInstallmentPlanListView(ListAPIView):
    permission_classes = [IsAdminRole]
    serializer_class = AdminInstallmentPlanSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return InstallmentPlanTracker.list_for_admin(_filters(PlanFilterSerializer, self.request))


class AdminOverdueInstallmentsView(ListAPIView):
    """Active plans whose next installment date has passed."""
    permission_classes = [IsAdminRole]
    serializer_class = AdminInstallmentPlanSerializer
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return InstallmentPlanTracker.overdue(timezone.localdate())


class AdminPaymentStatsView(APIView):
    permission_classes = [IsAdminRole]

    @extend_schema(parameters=[OpenApiParameter("start", str), OpenApiParameter("end", str)])
    def get(self, request):
        filters = _filters(StatsFilterSerializer, request)
        return Response(ReportingAggregator.dashboard_stats(filters.get("start"), filters.get("end")))


class AdminMonthlyRevenueView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request, year):
        months = ReportingAggregator.monthly_revenue(year)
        return Response({
            "year": year,
            "months": months,
            "total": sum((m["revenue"] for m in months), ZERO),
        })
