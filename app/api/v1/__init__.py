"""
API v1 Router

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import intake, intake_links

router = APIRouter()

# Public intake routes (token in path, no session)
router.include_router(intake.router)

# Staff routes for issuing and revoking intake links
router.include_router(intake_links.router)
