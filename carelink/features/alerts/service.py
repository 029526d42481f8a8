# Alerts Feature - Service

from typing import List, Optional
from datetime import datetime
from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError
from carelink.features.alerts.models import Location, SOSAlert
from carelink.features.alerts.schemas import (
    MedicationBroadcast,
    SOSAlertResponse,
    SOSBroadcast,
)
from carelink.features.caregivers.service import CaregiverService
from carelink.realtime.channel import BroadcastChannel
from carelink.core.logging import logger
from carelink.shared.exceptions import (
    BadRequestException,
    InternalException,
    NotFoundException,
)


SOS_EVENT = "sos_alert"
MEDICATION_EVENT = "patient_medication_update"
SOS_MESSAGE = "EMERGENCY! Patient needs help immediately."


class AlertDispatcher:
    """
    Records SOS alerts and fans them out to a patient's caregivers.

    The stored alert is the source of truth. Realtime delivery is
    best-effort: it is scheduled after the record is written and its
    failures never reach the caller.
    """

    def __init__(self, channel: BroadcastChannel):
        self.channel = channel

    async def trigger_sos(self, patient_id: str, location: Location) -> SOSAlert:
        """
        Raise an SOS alert for a patient.

        Args:
            patient_id: Patient raising the alert
            location: Where the patient is

        Returns:
            The stored alert with its notified_contacts snapshot

        Raises:
            InternalException: If the alert could not be stored; nothing is broadcast
        """
        alert = SOSAlert(
            patient_id=patient_id,
            location=location,
            status="active",
            notified_contacts=[],
            trigger_time=datetime.utcnow(),
        )

        try:
            await alert.insert()
        except PyMongoError as e:
            logger.error(f"Failed to record SOS alert for patient {patient_id}: {e}")
            raise InternalException("Failed to record SOS alert")

        try:
            recipients = await CaregiverService.resolve_alert_recipients(patient_id)
            alert.notified_contacts = recipients
            await alert.save()
        except PyMongoError as e:
            logger.error(f"Failed to snapshot SOS recipients for patient {patient_id}: {e}")
            await self._discard(alert)
            raise InternalException("Failed to record SOS alert")

        logger.warning(
            f"SOS alert {alert.id} for patient {patient_id}, notifying {len(recipients)} caregiver(s)"
        )

        self.broadcast_sos(patient_id, location)
        return alert

    def broadcast_sos(self, patient_id: str, location: Optional[Location]):
        """Schedule a sos_alert broadcast into the patient's room."""
        payload = SOSBroadcast(
            patientId=patient_id,
            location=location.model_dump(exclude_none=True) if location else None,
            timestamp=datetime.utcnow().isoformat(),
            message=SOS_MESSAGE,
        )
        return self.channel.dispatch(
            BroadcastChannel.room_for(patient_id),
            SOS_EVENT,
            payload.model_dump(),
        )

    def publish_medication_event(self, patient_id: str, medicine: str, status: str):
        """Fire-and-forget medication update for the patient's caregivers."""
        payload = MedicationBroadcast(patientId=patient_id, medicine=medicine, status=status)

        logger.info(f"Medication update for {patient_id}: {medicine} - {status}")

        return self.channel.dispatch(
            BroadcastChannel.room_for(patient_id),
            MEDICATION_EVENT,
            payload.model_dump(),
        )

    @staticmethod
    async def list_alerts(patient_id: str) -> List[SOSAlert]:
        """Get a patient's alerts, newest first."""
        return await SOSAlert.find(
            SOSAlert.patient_id == patient_id
        ).sort([("trigger_time", -1)]).to_list()

    @staticmethod
    async def resolve_alert(alert_id: str, patient_id: str, status: str) -> SOSAlert:
        """
        Close an active alert as resolved or as a false alarm.

        Raises:
            NotFoundException: If the alert does not exist or belongs to another patient
            BadRequestException: If the alert is already closed
        """
        try:
            alert = await SOSAlert.get(PydanticObjectId(alert_id))
        except (InvalidId, TypeError):
            raise NotFoundException("Alert not found")

        if not alert or alert.patient_id != patient_id:
            raise NotFoundException("Alert not found")

        if alert.status != "active":
            raise BadRequestException(f"Alert is already {alert.status}")

        alert.status = status
        alert.resolved_at = datetime.utcnow()
        alert.update_timestamp()
        await alert.save()

        logger.info(f"SOS alert {alert_id} closed as {status}")
        return alert

    @staticmethod
    async def _discard(alert: SOSAlert):
        # A half-written alert must not linger as active with no recipients
        try:
            await alert.delete()
        except PyMongoError as e:
            logger.error(f"Could not remove incomplete SOS alert {alert.id}: {e}")

    @staticmethod
    def to_response(alert: SOSAlert) -> SOSAlertResponse:
        return SOSAlertResponse(
            id=str(alert.id),
            patient_id=alert.patient_id,
            location=alert.location,
            status=alert.status,
            notified_contacts=alert.notified_contacts,
            trigger_time=alert.trigger_time,
            resolved_at=alert.resolved_at,
            created_at=alert.created_at,
            updated_at=alert.updated_at,
        )
