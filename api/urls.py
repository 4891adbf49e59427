from django.urls import path, include

urlpatterns = [
    path("payments/", include("payments.urls")),
    path("registrations/", include("registrations.urls")),
]
