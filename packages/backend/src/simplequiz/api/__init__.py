"""API route aggregation.

All routers registered here get mounted in main.py. Authentication is
per route: room reads accept anonymous callers, writes and the session
endpoints declare require_session themselves.
"""

from fastapi import APIRouter

from simplequiz.api.auth import router as auth_router
from simplequiz.api.health import router as health_router
from simplequiz.api.rooms import router as rooms_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(rooms_router, tags=["rooms"])
