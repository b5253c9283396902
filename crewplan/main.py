from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crewplan.api.routes import router as api_router
from crewplan.config.settings import get_settings
from crewplan.storage.cache import get_cache
from crewplan.storage.database import init_db
from crewplan.utils.logging_config import setup_logging


logger = setup_logging()
settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    description="Technician staffing for event missions: availability, conflicts, proposals and billing",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name}...")
    init_db()
    logger.info("Database initialized")
    logger.info(f"Roster cache: {'enabled' if settings.cache_enabled else 'disabled'}")
    logger.info(f"Notifications: {'SMTP ' + settings.smtp_host if settings.smtp_host else 'log only'}")
    if settings.lenient_dates:
        logger.warning("Lenient date parsing enabled: malformed windows fall back to the default working day")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.app_name}...")

app.include_router(api_router, prefix="/api/v1", tags=["staffing"])


@app.get("/health", tags=["health"])
def health_check():
    """Health check endpoint for monitoring and load balancers."""
    cache = get_cache()
    return {
        "status": "ok",
        "app": settings.app_name,
        "version": "1.0.0",
        "cache": "disabled" if cache is None else ("ok" if cache.health_check() else "unreachable"),
    }
