"""CareLink caregiver alert service."""
