"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import jobs

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(jobs.router, prefix="/jobs", tags=["Scheduled Jobs"])
