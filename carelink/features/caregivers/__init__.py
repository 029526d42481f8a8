# Caregivers Feature

from carelink.features.caregivers.models import CaregiverLink
from carelink.features.caregivers.router import router
from carelink.features.caregivers.service import CaregiverService

__all__ = ["CaregiverLink", "router", "CaregiverService"]
