from fastapi import APIRouter

from eventos.api.v1.endpoints import auth, events, files, certificates, admin
from eventos.core.config import settings

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(files.router, prefix="/events", tags=["Event Files"])
api_router.include_router(certificates.router, prefix="/events", tags=["Certificates"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "fmp-eventos", "version": settings.API_VERSION}
