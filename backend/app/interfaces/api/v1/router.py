from fastapi import APIRouter

from app.interfaces.api.v1.routes.auth import router as auth_router
from app.interfaces.api.v1.routes.billing_periods import router as billing_periods_router
from app.interfaces.api.v1.routes.parents import router as parents_router
from app.interfaces.api.v1.routes.payments import router as payments_router
from app.interfaces.api.v1.routes.ping import router as ping_router
from app.interfaces.api.v1.routes.reports import router as reports_router
from app.interfaces.api.v1.routes.teachers import router as teachers_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth_router)
api_router.include_router(billing_periods_router)
api_router.include_router(parents_router)
api_router.include_router(payments_router)
api_router.include_router(ping_router)
api_router.include_router(reports_router)
api_router.include_router(teachers_router)
