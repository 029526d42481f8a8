# Alerts Feature - Models

from typing import List, Literal, Optional
from datetime import datetime
from beanie import Document, Indexed
from pydantic import AliasChoices, BaseModel, Field
from carelink.shared.models import TimestampMixin


AlertStatus = Literal["active", "resolved", "false_alarm"]


class Location(BaseModel):
    """Where the patient was when the alert fired."""
    latitude: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("longitude", "lng"))
    address: Optional[str] = None


class SOSAlert(Document, TimestampMixin):
    """
    A single emergency event.

    `notified_contacts` is the snapshot of caregivers entitled to the alert
    at trigger time. It is written once, right after creation, and never
    changes afterwards.
    """

    patient_id: Indexed(str)
    location: Location
    status: AlertStatus = "active"
    notified_contacts: List[str] = Field(default_factory=list)
    trigger_time: datetime = Field(default_factory=datetime.utcnow)
    resolved_at: Optional[datetime] = None

    class Settings:
        name = "sos_alerts"
        use_state_management = True
        indexes = [
            [("patient_id", 1), ("trigger_time", -1)],
        ]
