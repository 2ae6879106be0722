from fastapi import APIRouter

from uthabiti.api.v1.routers import (
    activity_logs,
    auth,
    dashboard,
    facilities,
    health,
    loan_types,
    members,
    notifications,
    regions,
    registrations,
    sacco,
    self_service,
    settings,
    surveys,
    users,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(regions.router)
api_router.include_router(dashboard.router)
api_router.include_router(members.router)
api_router.include_router(registrations.router)
api_router.include_router(facilities.router)
api_router.include_router(sacco.router)
api_router.include_router(loan_types.router)
api_router.include_router(settings.router)
api_router.include_router(surveys.router)
api_router.include_router(users.router)
api_router.include_router(notifications.router)
api_router.include_router(activity_logs.router)
api_router.include_router(self_service.router)

__all__ = ["api_router"]
