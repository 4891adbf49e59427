"""
Gateway adapters: verify a webhook request and turn its body into a
``GatewayEvent`` the reconciler understands.
"""
import hashlib
import hmac
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.conf import settings

from ..exceptions import InvalidSignature, MalformedEvent
from ..models import PaymentStatus

CENT = Decimal("0.01")


@dataclass(frozen=True)
class GatewayEvent:
    reference: str
    status: str
    amount: Decimal
    currency: str
    gateway: str = "paystack"
    payment_method: str = ""
    metadata: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict, compare=False)


def _money(value, subunit=1) -> Decimal:
    try:
        return (Decimal(str(value)) / subunit).quantize(CENT)
    except (InvalidOperation, TypeError):
        raise MalformedEvent(f"Invalid amount {value!r}.")


# Paystack transaction statuses -> ours
PAYSTACK_STATUS_MAP = {
    "success": PaymentStatus.SUCCESS,
    "failed": PaymentStatus.FAILED,
    "reversed": PaymentStatus.FAILED,
    "abandoned": PaymentStatus.CANCELLED,
    "cancelled": PaymentStatus.CANCELLED,
    "pending": PaymentStatus.PENDING,
    "ongoing": PaymentStatus.PENDING,
    "processing": PaymentStatus.PENDING,
    "queued": PaymentStatus.PENDING,
}

PAYSTACK_CHARGE_EVENTS = {"charge.success", "charge.failed"}


class PaystackAdapter:
    name = "paystack"
    signature_header = "x-paystack-signature"

    def __init__(self, secret_key=None):
        self._secret_key = secret_key

    @property
    def secret_key(self):
        return self._secret_key or settings.PAYSTACK_SECRET_KEY

    def sign(self, payload: bytes) -> str:
        return hmac.new(self.secret_key.encode(), payload, hashlib.sha512).hexdigest()

    def verify_signature(self, payload: bytes, signature) -> None:
        if not hmac.compare_digest(self.sign(payload), signature or ""):
            raise InvalidSignature()

    def parse(self, body: dict):
        """
        Accepts either a Paystack envelope ``{"event": "charge.success", "data": {...}}``
        (amount in kobo) or an already normalised body
        ``{"reference", "status", "amount", "currency"}`` (amount in naira).

        Returns None for envelope event types we do not reconcile.
        """
        if "event" in body:
            if body["event"] not in PAYSTACK_CHARGE_EVENTS:
                return None
            return self.from_transaction(body.get("data") or {}, raw=body)
        return self.from_normalized(body)

    def from_transaction(self, data: dict, raw=None) -> GatewayEvent:
        """Paystack transaction object (webhook ``data`` or verify response)."""
        reference = data.get("reference")
        if not reference or "amount" not in data:
            raise MalformedEvent()

        status = PAYSTACK_STATUS_MAP.get(str(data.get("status", "")).lower())
        if status is None:
            raise MalformedEvent(f"Unsupported Paystack status {data.get('status')!r}.", reference=reference)

        return GatewayEvent(
            reference=reference,
            status=status,
            amount=_money(data["amount"], settings.PAYMENT_AMOUNT_SUBUNIT),
            currency=(data.get("currency") or settings.PAYMENT_CURRENCY).upper(),
            gateway=self.name,
            payment_method=data.get("channel") or "",
            metadata=data.get("metadata") or {},
            raw=raw if raw is not None else data,
        )

    def from_normalized(self, body: dict) -> GatewayEvent:
        missing = [key for key in ("reference", "status", "amount") if body.get(key) in (None, "")]
        if missing:
            raise MalformedEvent(missing=",".join(missing))

        status = str(body["status"]).lower()
        if status not in PaymentStatus.values:
            raise MalformedEvent(f"Unsupported status {status!r}.")

        return GatewayEvent(
            reference=str(body["reference"]),
            status=status,
            amount=_money(body["amount"]),
            currency=(body.get("currency") or settings.PAYMENT_CURRENCY).upper(),
            gateway=self.name,
            payment_method=body.get("payment_method") or "",
            metadata=body.get("metadata") or {},
            raw=body,
        )


GATEWAYS = {
    PaystackAdapter.name: PaystackAdapter(),
}


def get_gateway(name):
    return GATEWAYS.get(name)
