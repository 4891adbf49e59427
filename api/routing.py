"""
WebSocket URL routing
"""
from django.urls import re_path
from payments import consumers

websocket_urlpatterns = [
    # Every payment of the connected student
    re_path(r'ws/payments/me/$', consumers.UserPaymentsConsumer.as_asgi()),

    # Payment status updates for the callback page
    re_path(r'ws/payments/(?P<reference>[\w-]+)/$', consumers.PaymentStatusConsumer.as_asgi()),
]
