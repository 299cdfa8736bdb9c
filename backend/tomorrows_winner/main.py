import logging

from fastapi import FastAPI

from tomorrows_winner.api.router import api_router
from tomorrows_winner.config import get_settings
from tomorrows_winner.core.scheduler import start_scheduler, stop_scheduler

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.app_name)
app.include_router(api_router)


@app.on_event("startup")
def startup_event() -> None:
    start_scheduler(settings)


@app.on_event("shutdown")
def shutdown_event() -> None:
    stop_scheduler()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "environment": settings.app_env}
