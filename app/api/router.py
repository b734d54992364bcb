# app/api/router.py
from fastapi import APIRouter
from app.api import (
    # Core
    routes_auth,
    routes_users,
    routes_lab_info,
    routes_masters,

    # Workflow
    routes_patients,
    routes_billing,
    routes_results,

    # Files
    routes_exports,
)

api_router = APIRouter()

api_router.include_router(routes_auth.router)
api_router.include_router(routes_users.router)
api_router.include_router(routes_lab_info.router)
api_router.include_router(routes_masters.router)

api_router.include_router(routes_patients.router)
api_router.include_router(routes_billing.router)
api_router.include_router(routes_results.router)

api_router.include_router(routes_exports.router)
