from fastapi import APIRouter

from infraviz.api.v1.endpoints import regions, scan

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(scan.router, tags=["AWS Scanning"])
api_router.include_router(regions.router, tags=["Regions"])
