from django.urls import path

from . import views

urlpatterns = [
    path("", views.RegistrationView.as_view(), name="registrations"),
    path("<int:registration_id>/status/", views.RegistrationStatusView.as_view(), name="registration-status"),
    path("admin/all/", views.AdminRegistrationListView.as_view(), name="admin-registrations"),
    path("admin/bulk-status/", views.BulkRegistrationStatusView.as_view(), name="registration-bulk-status"),
]
