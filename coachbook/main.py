import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from coachbook.api.v1.router import api_router
from coachbook.core.config import settings
from coachbook.core.database import init_models
from coachbook.core.exceptions import SchedulingError
from coachbook.models.document import Document  # noqa: F401 register table

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    if settings.APP_ENV == "development":
        await init_models()
    logger.info("CoachBook scheduling API started (%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="CoachBook API",
    description="Availability, appointments and academies for independent instructors",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "coachbook-api", "version": "0.1.0"}
