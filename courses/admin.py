from django.contrib import admin

from .models import Course


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("title", "course_fee", "application_fee", "offers_installments", "max_installments", "is_active")
    list_filter = ("offers_installments", "is_active")
    prepopulated_fields = {"slug": ("title",)}
