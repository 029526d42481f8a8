# Caregivers Feature - Schemas

from typing import List, Optional
from datetime import datetime
from pydantic import AliasChoices, BaseModel, EmailStr, Field
from carelink.features.caregivers.models import (
    CaregiverIdentity,
    CaregiverPermissions,
    LinkStatus,
)


# ============== Request Schemas ==============

class InviteCaregiverRequest(BaseModel):
    """Request schema for inviting a caregiver by email."""
    email: EmailStr
    relationship: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, max_length=100)
    permissions: Optional[CaregiverPermissions] = None


class PermissionsUpdateRequest(BaseModel):
    """
    Partial update of caregiver permissions.

    Only provided fields are updated; omitted fields remain unchanged.
    """
    view_symptoms: Optional[bool] = Field(
        None, validation_alias=AliasChoices("view_symptoms", "viewSymptoms")
    )
    view_medicines: Optional[bool] = Field(
        None, validation_alias=AliasChoices("view_medicines", "viewMedicines")
    )
    view_vitals: Optional[bool] = Field(
        None, validation_alias=AliasChoices("view_vitals", "viewVitals")
    )
    view_appointments: Optional[bool] = Field(
        None, validation_alias=AliasChoices("view_appointments", "viewAppointments")
    )
    receive_alerts: Optional[bool] = Field(
        None, validation_alias=AliasChoices("receive_alerts", "receiveAlerts")
    )
    receive_sos: Optional[bool] = Field(
        None, validation_alias=AliasChoices("receive_sos", "receiveSOS", "receiveSos")
    )


# ============== Response Schemas ==============

class ProfileSummary(BaseModel):
    """Display fields of the account on the other side of a link."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None


class CaregiverLinkResponse(BaseModel):
    """Response schema for a caregiver link."""
    id: str
    patient_id: str
    caregiver: CaregiverIdentity = Field(discriminator="kind")
    caregiver_email: str
    name: str
    relationship: str
    permissions: CaregiverPermissions
    status: LinkStatus
    caregiver_profile: Optional[ProfileSummary] = None  # Populated for the patient view
    patient_profile: Optional[ProfileSummary] = None  # Populated for the caregiver view
    created_at: datetime
    updated_at: datetime


class CaregiverLinkEnvelope(BaseModel):
    """Single link plus a human-readable message."""
    link: CaregiverLinkResponse
    message: Optional[str] = None


class CaregiverLinkListResponse(BaseModel):
    """Response schema for list of links."""
    links: List[CaregiverLinkResponse]
    total: int
