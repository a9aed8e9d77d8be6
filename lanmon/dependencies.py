from fastapi import Request

from lanmon.services.chat_relay import ChatRelay
from lanmon.services.monitor import ServiceMonitor


def get_monitor(request: Request) -> ServiceMonitor:
    """Return the service monitor stored on app state during lifespan."""
    return request.app.state.monitor


def get_chat_relay(request: Request) -> ChatRelay:
    return request.app.state.chat_relay
