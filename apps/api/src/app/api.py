from fastapi import APIRouter

from app.modules.applications.router import router as applications_router
from app.modules.consents.admin_router import router as admin_consents_router
from app.modules.consents.router import router as consents_router
from app.modules.coordinates.admin_router import router as admin_coordinates_router
from app.modules.coordinates.router import router as coordinates_router
from app.modules.notifications.router import router as notifications_router
from app.modules.reviews.admin_router import router as admin_reviews_router
from app.modules.reviews.router import router as reviews_router
from app.modules.sweeper.router import router as cron_router

api_router = APIRouter()

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(coordinates_router, tags=["Coordinates"])

api_router.include_router(consents_router, prefix="/applications", tags=["Consents"])

api_router.include_router(reviews_router, tags=["Requirements & Documents"])

api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])

api_router.include_router(
    admin_coordinates_router,
    prefix="/admin",
    tags=["Admin - Coordinates"],
)

api_router.include_router(
    admin_consents_router,
    prefix="/admin",
    tags=["Admin - Consents"],
)

api_router.include_router(
    admin_reviews_router,
    prefix="/admin",
    tags=["Admin - Requirements & Documents"],
)

api_router.include_router(cron_router, prefix="/cron", tags=["Cron"])
