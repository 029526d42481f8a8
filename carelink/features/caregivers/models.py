# Caregivers Feature - Models

from typing import Literal, Optional, Union
from beanie import Document, Indexed
from pydantic import AliasChoices, BaseModel, Field
from pymongo import ASCENDING, IndexModel
from carelink.shared.models import TimestampMixin


LinkStatus = Literal["pending", "active", "rejected"]


class Unlinked(BaseModel):
    """Invitation known only by email; no registered account yet."""
    kind: Literal["unlinked"] = "unlinked"


class Linked(BaseModel):
    """Invitation resolved to a registered caregiver account."""
    kind: Literal["linked"] = "linked"
    user_id: str


CaregiverIdentity = Union[Unlinked, Linked]


class CaregiverPermissions(BaseModel):
    """
    What a caregiver may see and receive for one patient.

    Accepts the snake_case names, the camelCase names used by the web
    client and the older `canX` spellings.
    """

    view_symptoms: bool = Field(
        True, validation_alias=AliasChoices("view_symptoms", "viewSymptoms", "canViewSymptoms")
    )
    view_medicines: bool = Field(
        True, validation_alias=AliasChoices("view_medicines", "viewMedicines", "canViewMedicines")
    )
    view_vitals: bool = Field(
        True, validation_alias=AliasChoices("view_vitals", "viewVitals", "canViewVitals")
    )
    view_appointments: bool = Field(
        True, validation_alias=AliasChoices("view_appointments", "viewAppointments", "canViewAppointments")
    )
    receive_alerts: bool = Field(
        True, validation_alias=AliasChoices("receive_alerts", "receiveAlerts", "canReceiveAlerts")
    )
    receive_sos: bool = Field(
        True, validation_alias=AliasChoices("receive_sos", "receiveSOS", "receiveSos", "canReceiveSOS")
    )


class CaregiverLink(Document, TimestampMixin):
    """
    Directed relationship from a patient to a caregiver.

    Created `pending` on invite, flipped to `active` or `rejected` by the
    invited caregiver. Links are never hard-deleted.
    """

    # Patient who owns the link (user id)
    patient_id: Indexed(str)

    # Who the caregiver is, once known
    caregiver: CaregiverIdentity = Field(default_factory=Unlinked, discriminator="kind")

    # Invitation key, stored lower-cased
    caregiver_email: Indexed(str)

    name: str = "Pending Caregiver"
    relationship: str = "Family"
    permissions: CaregiverPermissions = Field(default_factory=CaregiverPermissions)
    status: LinkStatus = "pending"

    class Settings:
        name = "caregiver_links"
        use_state_management = True
        indexes = [
            # A patient cannot invite the same email twice
            IndexModel(
                [("patient_id", ASCENDING), ("caregiver_email", ASCENDING)],
                unique=True,
                name="patient_caregiver_email_unique",
            ),
            # Recipient resolution for SOS fan-out
            [("patient_id", 1), ("status", 1)],
            # Caregiver-side lookups
            [("caregiver.user_id", 1), ("status", 1)],
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "patient_id": "665f1c2b9a1e4b0012345678",
                "caregiver": {"kind": "unlinked"},
                "caregiver_email": "ravi@example.com",
                "name": "Ravi",
                "relationship": "Son",
                "status": "pending",
            }
        }

    @property
    def caregiver_user_id(self) -> Optional[str]:
        if isinstance(self.caregiver, Linked):
            return self.caregiver.user_id
        return None
