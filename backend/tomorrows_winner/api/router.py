from fastapi import APIRouter

from tomorrows_winner.api.competitions import router as competitions_router
from tomorrows_winner.api.cron import router as cron_router

api_router = APIRouter()
api_router.include_router(cron_router)
api_router.include_router(competitions_router)
