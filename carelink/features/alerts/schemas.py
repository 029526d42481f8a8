# Alerts Feature - Schemas

from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from carelink.features.alerts.models import AlertStatus, Location


# ============== Request Schemas ==============

class TriggerSOSRequest(BaseModel):
    """Request schema for raising an SOS alert."""
    location: Location


class ResolveAlertRequest(BaseModel):
    """Request schema for closing an alert."""
    status: Literal["resolved", "false_alarm"]


class MedicationEventRequest(BaseModel):
    """Request schema for announcing a medication event to caregivers."""
    medicine: str = Field(..., min_length=1, max_length=200)
    status: Literal["taken", "skipped", "missed"] = "taken"


# ============== Response Schemas ==============

class SOSAlertResponse(BaseModel):
    """Response schema for an SOS alert."""
    id: str
    patient_id: str
    location: Location
    status: AlertStatus
    notified_contacts: List[str]
    trigger_time: datetime
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SOSAlertEnvelope(BaseModel):
    """Single alert plus a human-readable message."""
    alert: SOSAlertResponse
    message: Optional[str] = None


class SOSAlertListResponse(BaseModel):
    """Response schema for list of alerts."""
    alerts: List[SOSAlertResponse]
    total: int


# ============== Socket.IO Event Schemas ==============

class SOSBroadcast(BaseModel):
    """Payload of the sos_alert socket event."""
    patientId: str
    location: Optional[dict] = None
    timestamp: str
    message: str


class MedicationBroadcast(BaseModel):
    """Payload of the patient_medication_update socket event."""
    patientId: str
    medicine: str
    status: str
