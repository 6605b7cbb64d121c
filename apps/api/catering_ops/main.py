from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from catering_ops import __version__
from catering_ops.core.config import get_settings
from catering_ops.core.exceptions import CateringOpsError
from catering_ops.routers.analytics import router as analytics_router
from catering_ops.routers.auth import router as auth_router
from catering_ops.routers.chat import router as chat_router
from catering_ops.routers.dispatch import router as dispatch_router
from catering_ops.routers.health import router as health_router
from catering_ops.routers.ingredient_alerts import router as ingredient_alerts_router
from catering_ops.routers.inventory import router as inventory_router
from catering_ops.routers.inventory_checks import admin_router as inventory_admin_router
from catering_ops.routers.inventory_checks import router as inventory_check_router
from catering_ops.routers.inventory_shortages import router as inventory_shortages_router
from catering_ops.routers.notifications import router as notifications_router
from catering_ops.routers.odoo_recipes import router as odoo_recipes_router
from catering_ops.routers.production_schedules import router as production_schedules_router
from catering_ops.routers.quality_checks import router as quality_checks_router
from catering_ops.routers.recipe_instructions import router as recipe_instructions_router
from catering_ops.routers.recipes import router as recipes_router
from catering_ops.routers.stations import router as stations_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Catering operations API - production schedules, dispatch, inventory shortages, waste and sales analytics for a multi-branch catering business.",
    version=__version__,
)


@app.exception_handler(CateringOpsError)
async def domain_exception_handler(request: Request, exc: CateringOpsError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


@app.exception_handler(StaleDataError)
async def stale_data_handler(request: Request, exc: StaleDataError):
    """A concurrent request updated the same document first."""
    logger.warning(f"Concurrent modification on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=409,
        content={"error": "This record was modified by another request. Reload and try again."},
    )


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(production_schedules_router, prefix="/api")
app.include_router(stations_router, prefix="/api")
app.include_router(dispatch_router, prefix="/api")
app.include_router(inventory_router, prefix="/api")
app.include_router(inventory_check_router, prefix="/api")
app.include_router(inventory_admin_router, prefix="/api")
app.include_router(inventory_shortages_router, prefix="/api")
app.include_router(ingredient_alerts_router, prefix="/api")
app.include_router(analytics_router, prefix="/api")
app.include_router(recipes_router, prefix="/api")
app.include_router(recipe_instructions_router, prefix="/api")
app.include_router(odoo_recipes_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(quality_checks_router, prefix="/api")
app.include_router(chat_router, prefix="/api")


@app.get("/")
def read_root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "docs": "/docs",
        "health": "/health"
    }
