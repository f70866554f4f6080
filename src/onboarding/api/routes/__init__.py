"""
API routers.

Contains the /auth, /consultants and account maintenance endpoints of the
onboarding service.
"""

from onboarding.api.routes.auth import router as auth_router
from onboarding.api.routes.consultants import router as consultants_router
from onboarding.api.routes.users import router as users_router

__all__ = ["auth_router", "consultants_router", "users_router"]
