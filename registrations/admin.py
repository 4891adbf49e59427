from django.contrib import admin

from .models import Registration


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "course", "status", "payment_status", "created_at")
    list_filter = ("status", "payment_status")
    search_fields = ("user__email", "course__title")
    readonly_fields = ("status", "payment_status", "reviewed_by", "reviewed_at", "completed_at")
