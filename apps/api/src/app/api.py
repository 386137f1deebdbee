from fastapi import APIRouter

from app.modules.applications import admin_router as admin_applications_router
from app.modules.applications import router as applications_router
from app.modules.scholarships.admin_router import router as admin_scholarships_router
from app.modules.scholarships.router import router as scholarships_router
from app.modules.statistics import router as statistics_router

api_router = APIRouter()

api_router.include_router(scholarships_router, prefix="/scholarships", tags=["Scholarships"])

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(
    admin_applications_router,
    prefix="/admin/applications",
    tags=["Admin - Applications"],
)

api_router.include_router(
    admin_scholarships_router,
    prefix="/admin/scholarships",
    tags=["Admin - Scholarships"],
)

api_router.include_router(
    statistics_router,
    prefix="/admin/stats",
    tags=["Admin - Statistics"],
)
