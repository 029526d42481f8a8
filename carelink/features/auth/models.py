from beanie import Document, Indexed
from pydantic import EmailStr
from typing import Optional
from carelink.shared.models import TimestampMixin


class User(Document, TimestampMixin):
    """
    Registered account.

    Both patients and caregivers are plain users; the caregiver
    relationship lives on CaregiverLink, not on the account.
    """

    email: Indexed(EmailStr, unique=True)
    password_hash: str
    name: str
    phone: Optional[str] = None
    is_active: bool = True

    class Settings:
        name = "users"
        use_state_management = True

    class Config:
        json_schema_extra = {
            "example": {
                "email": "asha@example.com",
                "name": "Asha Verma",
                "phone": "+919800000000",
            }
        }
