"""
Gateway webhook entry point
"""
import json
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from ..exceptions import InvalidSignature, MalformedEvent, PaymentError
from ..services import WebhookReconciler, get_gateway

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def gateway_webhook(request, gateway):
    """
    200 for applied, replayed and ignored events; the error code and its
    status otherwise. A store failure answers 503 so the gateway retries.
    """
    adapter = get_gateway(gateway)
    if adapter is None:
        logger.warning(f"Webhook for unknown gateway {gateway!r}")
        return JsonResponse({"error": "unknown_gateway"}, status=404)

    # 1️⃣ Get raw body and signature
    payload = request.body
    signature = request.headers.get(adapter.signature_header)

    try:
        # 2️⃣ Verify signature
        try:
            adapter.verify_signature(payload, signature)
        except InvalidSignature:
            logger.warning(f"Invalid {gateway} webhook signature")
            raise

        # 3️⃣ Parse event data
        try:
            body = json.loads(payload)
        except json.JSONDecodeError:
            logger.error(f"Invalid JSON in {gateway} webhook payload")
            raise MalformedEvent("Invalid JSON payload.")
        if not isinstance(body, dict):
            raise MalformedEvent("Payload must be a JSON object.")

        event = adapter.parse(body)
        if event is None:
            logger.info(f"Received unhandled {gateway} webhook event: {body.get('event')}")
            return JsonResponse({"status": "received"}, status=200)

        logger.info(f"Payment webhook received: {event.reference} - {event.status}")

        # 4️⃣ Reconcile
        result = WebhookReconciler().reconcile(event)

    except PaymentError as exc:
        return JsonResponse(exc.as_dict(), status=exc.status_code)
    except DatabaseError:
        logger.exception(f"Store unavailable while handling {gateway} webhook")
        return JsonResponse(
            {"error": "store_unavailable", "detail": "Try again later."}, status=503,
        )

    return JsonResponse(result.as_dict(), status=200)
