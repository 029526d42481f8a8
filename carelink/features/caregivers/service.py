# Caregivers Feature - Service

from typing import List, Optional
from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError
from carelink.features.caregivers.models import (
    CaregiverLink,
    CaregiverPermissions,
    Linked,
    Unlinked,
)
from carelink.features.caregivers.schemas import (
    CaregiverLinkResponse,
    PermissionsUpdateRequest,
    ProfileSummary,
)
from carelink.features.auth.models import User
from carelink.features.auth.service import AuthService
from carelink.core.logging import logger
from carelink.shared.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
)


DEFAULT_CAREGIVER_NAME = "Pending Caregiver"
DEFAULT_RELATIONSHIP = "Family"


class CaregiverService:
    """Service class for the patient/caregiver directory."""

    @staticmethod
    async def invite(
        patient: User,
        email: str,
        relationship: Optional[str] = None,
        name: Optional[str] = None,
        permissions: Optional[CaregiverPermissions] = None,
    ) -> CaregiverLink:
        """
        Invite a caregiver by email.

        If the email already belongs to a registered account the link is
        pre-linked to it, but it stays `pending` until the caregiver accepts.

        Raises:
            BadRequestException: If the patient invites their own email
            ConflictException: If the email (or its account) is already linked
        """
        email = email.lower()
        patient_id = str(patient.id)

        if email == patient.email.lower():
            raise BadRequestException("You cannot invite yourself as a caregiver.")

        existing = await CaregiverLink.find_one(
            CaregiverLink.patient_id == patient_id,
            CaregiverLink.caregiver_email == email,
        )
        if existing:
            raise ConflictException("Caregiver already added or invited.")

        account = await AuthService.get_user_by_email(email)
        caregiver = Unlinked()
        if account:
            await CaregiverService._ensure_not_linked(patient_id, str(account.id))
            caregiver = Linked(user_id=str(account.id))

        link = CaregiverLink(
            patient_id=patient_id,
            caregiver=caregiver,
            caregiver_email=email,
            name=(account.name if account else None) or name or DEFAULT_CAREGIVER_NAME,
            relationship=relationship or DEFAULT_RELATIONSHIP,
            permissions=permissions or CaregiverPermissions(),
            status="pending",
        )

        try:
            await link.insert()
        except DuplicateKeyError:
            # Lost a race with a concurrent invite for the same email
            raise ConflictException("Caregiver already added or invited.")

        logger.info(f"Patient {patient_id} invited caregiver {email} (linked: {account is not None})")
        return link

    @staticmethod
    async def list_caregivers_of(patient_id: str) -> List[CaregiverLinkResponse]:
        """
        Get every caregiver link of a patient, regardless of status.

        Linked caregivers have their profile resolved for display.
        """
        links = await CaregiverLink.find(CaregiverLink.patient_id == patient_id).to_list()

        result = []
        for link in links:
            profile = None
            if link.caregiver_user_id:
                profile = await CaregiverService._profile(link.caregiver_user_id)
            result.append(CaregiverService.to_response(link, caregiver_profile=profile))

        return result

    @staticmethod
    async def list_patients_of(caregiver: User) -> List[CaregiverLinkResponse]:
        """
        Get the patients a caregiver currently looks after.

        Matches on the linked account id or on the invitation email, so
        invitations sent before the caregiver registered are found too.
        Only `active` links are returned.
        """
        links = await CaregiverLink.find({
            "$or": [
                {"caregiver.user_id": str(caregiver.id)},
                {"caregiver_email": caregiver.email.lower()},
            ],
            "status": "active",
        }).to_list()

        result = []
        for link in links:
            profile = await CaregiverService._profile(link.patient_id)
            result.append(CaregiverService.to_response(link, patient_profile=profile))

        return result

    @staticmethod
    async def resolve_alert_recipients(patient_id: str) -> List[str]:
        """Emails of the active caregivers allowed to receive SOS alerts."""
        links = await CaregiverLink.find({
            "patient_id": patient_id,
            "status": "active",
            "permissions.receive_sos": True,
        }).to_list()

        return [link.caregiver_email for link in links]

    @staticmethod
    async def has_access(user_id: str, email: str, patient_id: str) -> bool:
        """Whether an identity is the patient or one of their active caregivers."""
        if user_id == patient_id:
            return True

        link = await CaregiverLink.find_one({
            "patient_id": patient_id,
            "status": "active",
            "$or": [
                {"caregiver.user_id": user_id},
                {"caregiver_email": email.lower()},
            ],
        })
        return link is not None

    @staticmethod
    async def respond_to_invitation(link_id: str, caregiver: User, accept: bool) -> CaregiverLink:
        """
        Accept or reject a pending invitation as the invited caregiver.

        Raises:
            NotFoundException: If the link does not exist or was not sent to this caregiver
            BadRequestException: If the invitation was already answered
            ConflictException: If the caregiver is already linked to the patient
        """
        link = await CaregiverService._get_link(link_id)
        caregiver_id = str(caregiver.id)

        is_invitee = (
            link.caregiver_user_id == caregiver_id
            or link.caregiver_email == caregiver.email.lower()
        )
        if not is_invitee:
            raise NotFoundException("Invitation not found")

        if link.status != "pending":
            raise BadRequestException(f"Invitation is already {link.status}")

        if accept:
            if link.caregiver_user_id != caregiver_id:
                await CaregiverService._ensure_not_linked(link.patient_id, caregiver_id)
                link.caregiver = Linked(user_id=caregiver_id)
            if link.name == DEFAULT_CAREGIVER_NAME:
                link.name = caregiver.name
            link.status = "active"
        else:
            link.status = "rejected"

        link.update_timestamp()
        await link.save()

        logger.info(f"Caregiver {caregiver.email} {link.status} invitation {link_id}")
        return link

    @staticmethod
    async def update_permissions(
        link_id: str,
        patient_id: str,
        changes: PermissionsUpdateRequest,
    ) -> CaregiverLink:
        """
        Partially update a link's permissions as the owning patient.

        Raises:
            NotFoundException: If the link does not exist or belongs to another patient
        """
        link = await CaregiverService._get_link(link_id)
        if link.patient_id != patient_id:
            raise NotFoundException("Caregiver not found")

        updates = changes.model_dump(exclude_none=True)
        if updates:
            link.permissions = link.permissions.model_copy(update=updates)
            link.update_timestamp()
            await link.save()
            logger.info(f"Updated permissions on link {link_id}: {updates}")

        return link

    @staticmethod
    def to_response(
        link: CaregiverLink,
        caregiver_profile: Optional[ProfileSummary] = None,
        patient_profile: Optional[ProfileSummary] = None,
    ) -> CaregiverLinkResponse:
        return CaregiverLinkResponse(
            id=str(link.id),
            patient_id=link.patient_id,
            caregiver=link.caregiver,
            caregiver_email=link.caregiver_email,
            name=link.name,
            relationship=link.relationship,
            permissions=link.permissions,
            status=link.status,
            caregiver_profile=caregiver_profile,
            patient_profile=patient_profile,
            created_at=link.created_at,
            updated_at=link.updated_at,
        )

    @staticmethod
    async def _get_link(link_id: str) -> CaregiverLink:
        try:
            link = await CaregiverLink.get(PydanticObjectId(link_id))
        except (InvalidId, TypeError):
            raise NotFoundException("Caregiver not found")

        if not link:
            raise NotFoundException("Caregiver not found")

        return link

    @staticmethod
    async def _ensure_not_linked(patient_id: str, caregiver_id: str):
        existing = await CaregiverLink.find_one({
            "patient_id": patient_id,
            "caregiver.user_id": caregiver_id,
        })
        if existing:
            raise ConflictException("Caregiver already added or invited.")

    @staticmethod
    async def _profile(user_id: str) -> Optional[ProfileSummary]:
        user = await AuthService.get_user_by_id(user_id)
        if not user:
            return None

        return ProfileSummary(
            id=str(user.id),
            name=user.name,
            email=user.email,
            phone=user.phone,
        )
