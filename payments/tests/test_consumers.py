import pytest
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from payments.consumers import UserPaymentsConsumer
from payments.models import PaymentStatus
from payments.websocket_utils import notify_payment_status


pytestmark = pytest.mark.django_db(transaction=True)


def connect_as(user):
    communicator = WebsocketCommunicator(UserPaymentsConsumer.as_asgi(), "/ws/payments/me/")
    communicator.scope["user"] = user
    return communicator


def test_student_feed_receives_own_payment_updates(payment_record_factory, student, course):
    record = payment_record_factory(user=student, course=course, reference="R-FEED")

    async def session():
        communicator = connect_as(student)
        connected, _ = await communicator.connect()
        snapshot = await communicator.receive_json_from()

        record.status = PaymentStatus.SUCCESS
        await database_sync_to_async(notify_payment_status)(record)
        update = await communicator.receive_json_from()

        await communicator.disconnect()
        return connected, snapshot, update

    connected, snapshot, update = async_to_sync(session)()

    assert connected
    assert snapshot["type"] == "payments.pending"
    assert [p["reference"] for p in snapshot["payments"]] == ["R-FEED"]
    assert update["reference"] == "R-FEED"
    assert update["status"] == "success"


def test_student_feed_requires_login():
    async def session():
        communicator = connect_as(AnonymousUser())
        connected, code = await communicator.connect()
        return connected, code

    connected, code = async_to_sync(session)()

    assert connected is False
    assert code == 4001
