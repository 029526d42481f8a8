# SOS Alerts Feature

from carelink.features.alerts.models import SOSAlert
from carelink.features.alerts.router import router
from carelink.features.alerts.service import AlertDispatcher

__all__ = ["SOSAlert", "router", "AlertDispatcher"]
