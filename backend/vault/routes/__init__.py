from vault.routes.locker import router as locker_router
from vault.routes.requirements import router as requirements_router

__all__ = ["locker_router", "requirements_router"]
