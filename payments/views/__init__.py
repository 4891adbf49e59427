from rest_framework.response import Response
from rest_framework.views import exception_handler

from ..exceptions import PaymentError


def error_response(exc):
    """Response for a PaymentError: its code, detail and context at its status."""
    return Response(exc.as_dict(), status=exc.status_code)


def payment_exception_handler(exc, context):
    # views that let a PaymentError escape still answer with the same body
    if isinstance(exc, PaymentError):
        return error_response(exc)
    return exception_handler(exc, context)
