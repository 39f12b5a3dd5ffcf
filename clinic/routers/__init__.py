"""API router initializers."""

from fastapi import APIRouter


def get_api_router() -> APIRouter:
    """Construct and return the API router."""

    from clinic.routers.appointments import router as appointments_router
    from clinic.routers.clinic_hours import router as clinic_hours_router

    api_router = APIRouter()
    api_router.include_router(
        appointments_router,
        prefix="/appointments",
        tags=["appointments"],
    )
    api_router.include_router(clinic_hours_router, prefix="/clinic", tags=["clinic"])
    return api_router
