from django.contrib import admin

from .models import InstallmentPlan, PaymentEvent, PaymentRecord


# payments only move through the reconciler, the admin is read-only
class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PaymentRecord)
class PaymentRecordAdmin(ReadOnlyAdmin):
    list_display = ("reference", "user", "course", "payment_type", "amount", "status", "paid_at", "created_at")
    list_filter = ("status", "payment_type", "gateway")
    search_fields = ("reference", "user__email")


@admin.register(InstallmentPlan)
class InstallmentPlanAdmin(ReadOnlyAdmin):
    list_display = (
        "id", "user", "course", "payment_plan", "paid_installments", "total_installments",
        "remaining_balance", "next_due_date", "status",
    )
    list_filter = ("status", "payment_plan")
    search_fields = ("user__email", "course__title")


@admin.register(PaymentEvent)
class PaymentEventAdmin(ReadOnlyAdmin):
    list_display = ("reference", "gateway", "outcome", "error_code", "old_status", "new_status", "created_at")
    list_filter = ("outcome", "gateway")
    search_fields = ("reference",)
