import logging
import uuid

import requests

from paystackapi.paystack import Paystack
from django.conf import settings
from django.core.validators import validate_email
from django.core.exceptions import ValidationError

from ..exceptions import GatewayError

logger = logging.getLogger(__name__)


def new_reference(prefix="LI"):
    return f"{prefix}-{uuid.uuid4().hex[:16].upper()}"


def to_subunit(amount):
    # Paystack wants kobo (5000 = ₦50.00)
    return int(round(amount * settings.PAYMENT_AMOUNT_SUBUNIT))


def check_email_with_default(email: str) -> str:
    try:
        validate_email(email)
        return email
    except ValidationError:
        return settings.DEFAULT_PAYMENT_EMAIL


def _client():
    return Paystack(secret_key=settings.PAYSTACK_SECRET_KEY)


def initialize_paystack_transaction(*, amount, email, reference, currency, metadata=None):
    """
    Returns Paystack's ``data`` block: {authorization_url, access_code, reference}
    """
    params = {
        "reference": reference,
        "amount": to_subunit(amount),
        "email": check_email_with_default(email),
        "currency": currency,
        "metadata": metadata or {},
    }
    if settings.PAYSTACK_CALLBACK_URL:
        params["callback_url"] = settings.PAYSTACK_CALLBACK_URL

    try:
        response = _client().transaction.initialize(**params)
    except requests.RequestException as exc:
        logger.error(f"Paystack initialize failed for {reference}: {exc}")
        raise GatewayError(reference=reference)

    if not response.get("status"):
        logger.error(f"Paystack rejected initialize for {reference}: {response.get('message')}")
        raise GatewayError(response.get("message") or GatewayError.default_detail, reference=reference)

    return response["data"]


def verify_paystack_transaction(reference):
    """
    Returns Paystack's transaction ``data`` block for ``reference``.
    """
    try:
        response = _client().transaction.verify(reference)
    except requests.RequestException as exc:
        logger.error(f"Paystack verify failed for {reference}: {exc}")
        raise GatewayError(reference=reference)

    if not response.get("status"):
        raise GatewayError(response.get("message") or GatewayError.default_detail, reference=reference)

    return response["data"]
