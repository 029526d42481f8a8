"""
Room-based publish channel over Socket.IO.

One BroadcastChannel is built at startup and handed to every publisher.
Rooms are named `patient:{patient_id}`. Membership is ephemeral: it lives
only as long as the socket connection and is rebuilt by the client after
every reconnect.
"""

import asyncio
from typing import Any, Dict, List, Optional, Set

import socketio
from pydantic import BaseModel, Field

from carelink.core.logging import logger


class ConnectionSession(BaseModel):
    """Authenticated identity of one socket plus the rooms it has joined."""

    user_id: str
    email: str
    name: str
    rooms: Set[str] = Field(default_factory=set)


class BroadcastChannel:
    """Publishes events into patient rooms and tracks per-connection membership."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        namespace: str = "/caregivers",
        timeout: float = 5.0,
    ):
        self.sio = sio
        self.namespace = namespace
        self.timeout = timeout
        self.sessions: Dict[str, ConnectionSession] = {}
        self._room_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._pending: Set[asyncio.Task] = set()

    @staticmethod
    def room_for(patient_id: str) -> str:
        return f"patient:{patient_id}"

    # ============== Connection lifecycle ==============

    def open(self, sid: str, session: ConnectionSession):
        """Register a freshly authenticated connection."""
        self.sessions[sid] = session

    def session(self, sid: str) -> Optional[ConnectionSession]:
        return self.sessions.get(sid)

    async def join(self, sid: str, patient_id: str) -> bool:
        """
        Add a connection to a patient's room.

        Returns False if the connection was already a member.
        """
        session = self.sessions.get(sid)
        if session is None:
            raise KeyError(f"Unknown socket {sid}")

        room = self.room_for(patient_id)
        if room in session.rooms:
            return False

        await self.sio.enter_room(sid, room, namespace=self.namespace)
        session.rooms.add(room)
        return True

    async def close(self, sid: str) -> Optional[ConnectionSession]:
        """Drop a connection and every room it joined."""
        session = self.sessions.pop(sid, None)
        if session is None:
            return None

        for room in session.rooms:
            await self.sio.leave_room(sid, room, namespace=self.namespace)

        return session

    def members(self, room: str) -> List[str]:
        return [sid for sid, session in self.sessions.items() if room in session.rooms]

    # ============== Publishing ==============

    async def publish(self, room: str, event: str, payload: Dict[str, Any]):
        """
        Deliver an event to every current member of a room.

        Publishes into the same room are serialized so members see them in
        the order they were issued. Raises asyncio.TimeoutError if the
        transport stalls past the configured timeout.
        """
        lock = self._room_locks.setdefault(room, asyncio.Lock())
        self._lock_users[room] = self._lock_users.get(room, 0) + 1
        try:
            async with lock:
                await asyncio.wait_for(
                    self.sio.emit(event, payload, room=room, namespace=self.namespace),
                    timeout=self.timeout,
                )
        finally:
            self._lock_users[room] -= 1
            # Last publisher out drops the room's lock
            if not self._lock_users[room]:
                del self._lock_users[room]
                del self._room_locks[room]

    def dispatch(self, room: str, event: str, payload: Dict[str, Any]) -> asyncio.Task:
        """Schedule a best-effort publish without waiting for delivery."""
        task = asyncio.create_task(self._publish_safely(room, event, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def send(self, sid: str, event: str, payload: Dict[str, Any]):
        """Emit directly to a single connection."""
        await self.sio.emit(event, payload, room=sid, namespace=self.namespace)

    async def wait_idle(self):
        """Wait for every scheduled publish to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _publish_safely(self, room: str, event: str, payload: Dict[str, Any]):
        try:
            await self.publish(room, event, payload)
        except asyncio.TimeoutError:
            logger.error(f"Broadcast of {event} to {room} timed out after {self.timeout}s")
        except Exception as e:
            logger.error(f"Broadcast of {event} to {room} failed: {type(e).__name__}: {e}")
