import json
from decimal import Decimal

from django.urls import reverse
from rest_framework_simplejwt.tokens import RefreshToken

from payments.services import GatewayEvent, get_gateway


def authenticate(client, user):
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


def gateway_event(reference, status="success", amount="1000.00", currency="NGN"):
    return GatewayEvent(
        reference=reference, status=status, amount=Decimal(amount), currency=currency,
        raw={"reference": reference, "status": status, "amount": str(amount)},
    )


def paystack_body(reference, amount, status="success", event="charge.success", currency="NGN"):
    """Paystack webhook envelope; ``amount`` in naira, sent in kobo."""
    return {
        "event": event,
        "data": {
            "reference": reference,
            "amount": int(Decimal(str(amount)) * 100),
            "currency": currency,
            "status": status,
            "channel": "card",
            "metadata": {},
        },
    }


def post_webhook(client, body, gateway="paystack", signature=None):
    payload = body if isinstance(body, bytes) else json.dumps(body).encode()
    if signature is None:
        signature = get_gateway("paystack").sign(payload)
    return client.post(
        reverse("payment-webhook", args=[gateway]),
        data=payload,
        content_type="application/json",
        HTTP_X_PAYSTACK_SIGNATURE=signature,
    )
