from rest_framework.exceptions import APIException
from rest_framework.permissions import AllowAny
from rest_framework.test import APIRequestFactory
from rest_framework.views import APIView

from payments.exceptions import ConflictingTransition, PaymentError


class SettledPaymentView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        raise ConflictingTransition(reference="R1", current_status="success", incoming_status="failed")


def test_uncaught_payment_error_keeps_its_status_and_body():
    response = SettledPaymentView.as_view()(APIRequestFactory().get("/"))

    assert response.status_code == 409
    assert response.data == {
        "error": "conflicting_transition",
        "detail": "Payment already settled with a different status.",
        "reference": "R1",
        "current_status": "success",
        "incoming_status": "failed",
    }


def test_payment_errors_are_api_exceptions():
    exc = PaymentError("Custom detail.", reference="R2")

    assert isinstance(exc, APIException)
    assert str(exc) == "Custom detail."
    assert exc.as_dict() == {"error": "payment_error", "detail": "Custom detail.", "reference": "R2"}
