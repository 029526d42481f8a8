# Caregivers Namespace - Socket.IO handlers

import socketio
from typing import Any, Dict, Optional, Tuple
from pydantic import ValidationError
from carelink.realtime.channel import BroadcastChannel, ConnectionSession
from carelink.features.alerts.models import Location
from carelink.features.alerts.service import AlertDispatcher
from carelink.features.auth.dependencies import get_user_from_token
from carelink.features.caregivers.service import CaregiverService
from carelink.core.logging import logger


# Older clients use different event names for the same thing.
# alias -> (canonical event, defaults merged under the client's payload)
EVENT_ALIASES: Dict[str, Tuple[str, Dict[str, Any]]] = {
    "send_sos": ("trigger_sos", {}),
    "medication_taken": ("medication_update", {"status": "taken"}),
}


def canonical_event(event: str, data: Any) -> Tuple[str, Any]:
    """Map a client event name and payload onto the canonical event."""
    if event not in EVENT_ALIASES:
        return event, data

    canonical, defaults = EVENT_ALIASES[event]
    if isinstance(data, dict):
        data = {**defaults, **data}
    return canonical, data


async def authenticate_socket(auth_data: Optional[Dict]) -> Optional[ConnectionSession]:
    """
    Authenticate a socket connection using JWT token.

    Args:
        auth_data: Authentication data containing token

    Returns:
        Session for the connection or None if authentication fails
    """
    if not auth_data or "token" not in auth_data:
        logger.warning("Socket connection attempted without token")
        return None

    user = await get_user_from_token(auth_data["token"])
    if not user:
        logger.warning("Socket connection with invalid token")
        return None

    return ConnectionSession(user_id=str(user.id), email=user.email, name=user.name)


def _patient_id_from(data: Any) -> Optional[str]:
    # join_patient_room is sent either as a bare id or as {"patientId": ...}
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        return data.get("patientId") or data.get("patient_id")
    return None


class CaregiverNamespace(socketio.AsyncNamespace):
    """Realtime caregiver features: patient rooms, SOS and medication events."""

    def __init__(self, channel: BroadcastChannel, dispatcher: AlertDispatcher):
        super().__init__(channel.namespace)
        self.channel = channel
        self.dispatcher = dispatcher

    async def trigger_event(self, event, *args):
        if len(args) >= 2:
            event, data = canonical_event(event, args[1])
            args = (args[0], data) + tuple(args[2:])
        else:
            event, _ = canonical_event(event, None)
        return await super().trigger_event(event, *args)

    async def on_connect(self, sid, environ, auth=None):
        """Handle client connection."""
        try:
            session = await authenticate_socket(auth)
        except Exception as e:
            logger.error(f"Socket authentication error: {e}")
            return False

        if not session:
            logger.warning(f"Socket authentication failed: {sid}")
            return False  # Reject connection

        self.channel.open(sid, session)
        logger.info(f"Caregiver socket connected: {sid} ({session.email})")

        await self.channel.send(sid, "connected", {
            "message": "Connected successfully",
            "user_id": session.user_id,
        })
        return True

    async def on_disconnect(self, sid, reason=None):
        """Handle client disconnection."""
        session = await self.channel.close(sid)
        if session:
            logger.info(f"Caregiver socket disconnected: {sid} ({session.email}), left {len(session.rooms)} room(s)")
        else:
            logger.info(f"Caregiver socket disconnected: {sid}")

    async def on_join_patient_room(self, sid, data):
        """
        Join a patient's room.

        Args:
            data: patient id, or {"patientId": "..."}
        """
        patient_id = _patient_id_from(data)
        session = await self._authorized(sid, patient_id)
        if not session:
            return

        room = BroadcastChannel.room_for(patient_id)
        await self.channel.join(sid, patient_id)
        logger.info(
            f"Socket {sid} ({session.name}) joined patient room: {patient_id}, "
            f"{len(self.channel.members(room))} member(s)"
        )

        await self.channel.send(sid, "joined", {
            "patientId": patient_id,
            "room": room,
        })

    async def on_trigger_sos(self, sid, data):
        """
        Broadcast an SOS straight to the patient's room.

        Args:
            data: {"patientId": "...", "location": {...}}
        """
        patient_id = _patient_id_from(data)
        session = await self._authorized(sid, patient_id)
        if not session:
            return

        raw_location = data.get("location") if isinstance(data, dict) else None
        location = None
        if raw_location is not None:
            try:
                location = Location.model_validate(raw_location)
            except ValidationError:
                await self.channel.send(sid, "error", {"message": "Invalid location"})
                return

        logger.warning(f"SOS Alert (socket) for patient {patient_id} from {session.email}")
        self.dispatcher.broadcast_sos(patient_id, location)

    async def on_medication_update(self, sid, data):
        """
        Relay a medication event to the patient's room.

        Args:
            data: {"patientId": "...", "medicine": "...", "status": "..."}
        """
        patient_id = _patient_id_from(data)
        session = await self._authorized(sid, patient_id)
        if not session:
            return

        medicine = data.get("medicine") if isinstance(data, dict) else None
        status = data.get("status") if isinstance(data, dict) else None
        if not medicine or not status:
            await self.channel.send(sid, "error", {"message": "medicine and status required"})
            return

        self.dispatcher.publish_medication_event(patient_id, medicine, status)

    async def _authorized(self, sid, patient_id: Optional[str]) -> Optional[ConnectionSession]:
        """Session of the socket if it may act on the patient's room, else None."""
        session = self.channel.session(sid)
        if not session:
            await self.channel.send(sid, "error", {"message": "Not authenticated"})
            return None

        if not patient_id:
            await self.channel.send(sid, "error", {"message": "patientId required"})
            return None

        allowed = await CaregiverService.has_access(session.user_id, session.email, patient_id)
        if not allowed:
            logger.warning(f"Socket {sid} ({session.email}) denied access to patient {patient_id}")
            await self.channel.send(sid, "error", {"message": "Not allowed for this patient"})
            return None

        return session
