from fastapi import APIRouter

from hdstats.routers import stats

api_router = APIRouter()
api_router.include_router(stats.router, prefix="/analyses", tags=["analyses"])
