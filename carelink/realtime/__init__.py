"""Realtime delivery to caregivers over Socket.IO."""

from carelink.realtime.channel import BroadcastChannel, ConnectionSession

__all__ = ["BroadcastChannel", "ConnectionSession"]
