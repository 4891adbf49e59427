import json

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from payments.models import PaymentRecord, PaymentStatus
from payments.websocket_utils import (
    build_payment_event, get_payment_group_name, get_user_payments_group_name,
)


class PaymentStatusConsumer(AsyncWebsocketConsumer):
    """
    Pushes status changes of one payment to the student who made it.
    Sends the current state on connect so a late subscriber does not miss
    a webhook that already landed.
    """

    async def connect(self):
        user = self.scope.get("user")
        self.reference = self.scope["url_route"]["kwargs"]["reference"]

        if not user or not user.is_authenticated:
            await self.close(code=4001)
            return

        payment = await self.get_payment(user, self.reference)
        if payment is None:
            await self.close(code=4004)
            return

        self.group_name = get_payment_group_name(self.reference)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(text_data=json.dumps(build_payment_event(payment)))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def payment_update(self, event):
        await self.send(text_data=json.dumps(event["data"]))

    @database_sync_to_async
    def get_payment(self, user, reference):
        qs = PaymentRecord.objects.filter(reference=reference)
        if not getattr(user, "is_admin", False):
            qs = qs.filter(user=user)
        return qs.first()


class UserPaymentsConsumer(AsyncWebsocketConsumer):
    """
    Dashboard feed: every payment update of the connected student.
    """

    async def connect(self):
        self.user = self.scope.get("user")
        if not self.user or not self.user.is_authenticated:
            await self.close(code=4001)
            return

        self.group_name = get_user_payments_group_name(self.user.pk)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        pending = await self.get_pending_payments()
        await self.send(text_data=json.dumps({"type": "payments.pending", "payments": pending}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def payment_update(self, event):
        await self.send(text_data=json.dumps(event["data"]))

    @database_sync_to_async
    def get_pending_payments(self):
        qs = PaymentRecord.objects.filter(user=self.user, status=PaymentStatus.PENDING).order_by("-created_at")
        return [build_payment_event(payment) for payment in qs[:20]]
