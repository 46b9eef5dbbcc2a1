# DesignDesk Notifications Package
from .channels import EmailChannel, WhatsAppChannel, ChannelCircuitBreaker
from .outbox import NotificationOutbox, NotificationDispatcher, get_redis_client
from .templates import EventType, render

__all__ = [
    "EmailChannel",
    "WhatsAppChannel",
    "ChannelCircuitBreaker",
    "NotificationOutbox",
    "NotificationDispatcher",
    "get_redis_client",
    "EventType",
    "render",
]
