# Accounts Feature

from carelink.features.auth.models import User
from carelink.features.auth.router import router
from carelink.features.auth.service import AuthService

__all__ = ["User", "router", "AuthService"]
