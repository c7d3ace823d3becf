"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from gfa_api.api.routes import auth, events, registrations

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router)
api_router.include_router(registrations.router)
api_router.include_router(events.router)
