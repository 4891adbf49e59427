from django.urls import path

from .views import admin, student, webhook

admin_urls = [
    path("admin/all/", admin.AdminPaymentListView.as_view(), name="admin-payments"),
    path("admin/installment-plans/", admin.AdminInstallmentPlanListView.as_view(), name="admin-installment-plans"),
    path("admin/stats/", admin.AdminPaymentStatsView.as_view(), name="admin-payment-stats"),
    path(
        "admin/overdue-installments/", admin.AdminOverdueInstallmentsView.as_view(),
        name="admin-overdue-installments",
    ),
    path("admin/revenue/<int:year>/", admin.AdminMonthlyRevenueView.as_view(), name="admin-monthly-revenue"),
]

urlpatterns = [
    path("webhook/<str:gateway>/", webhook.gateway_webhook, name="payment-webhook"),
    path("initialize/", student.InitializePaymentView.as_view(), name="payment-initialize"),
    path("verify/<str:reference>/", student.VerifyPaymentView.as_view(), name="payment-verify"),
    path("installment-plans/", student.InstallmentPlanCreateView.as_view(), name="installment-plan-create"),
    path("me/", student.MyPaymentsView.as_view(), name="my-payments"),
    path("me/installment-plans/", student.MyInstallmentPlansView.as_view(), name="my-installment-plans"),
] + admin_urls
