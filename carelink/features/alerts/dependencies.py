# Alerts Feature - Dependencies

from fastapi import Request
from carelink.features.alerts.service import AlertDispatcher


def get_dispatcher(request: Request) -> AlertDispatcher:
    """The dispatcher built at startup and attached to the application."""
    return request.app.state.dispatcher
