"""
WebSocket broadcasting utilities
"""
from channels.layers import get_channel_layer
from asgiref.sync import async_to_sync


def get_payment_group_name(reference):
    """Group for one payment (the callback page listens here)"""
    return f"payment_{reference}"


def get_user_payments_group_name(user_id):
    """Group for everything payment-related of one student"""
    return f"user_{user_id}_payments"


def build_payment_event(payment):
    return {
        "type": "payment.status",
        "reference": payment.reference,
        "status": payment.status,
        "payment_type": payment.payment_type,
        "amount": str(payment.amount),
        "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
    }


def notify_payment_status(payment):
    """Broadcast a payment's new status to its reference group and its owner"""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    event = {"type": "payment_update", "data": build_payment_event(payment)}
    send = async_to_sync(channel_layer.group_send)
    send(get_payment_group_name(payment.reference), event)
    send(get_user_payments_group_name(payment.user_id), event)
