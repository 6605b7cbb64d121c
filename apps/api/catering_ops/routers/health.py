"""
Liveness and dependency health.

Only the database decides the overall status. Redis and the freshness of the
ERP mirror tables are reported for the ops dashboard but never fail the check:
analytics keep serving the last synced data when the nightly sync is late.
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session
import redis

from catering_ops.core.config import get_settings
from catering_ops.db.session import get_db
from catering_ops.models.odoo import OdooSale, OdooWaste

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])
settings = get_settings()


@router.get("/health")
async def health_check():
    """Liveness only."""
    return {"status": "ok"}


def _database(db: Session) -> dict:
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "error", "message": str(e)}


def _redis() -> dict:
    try:
        redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2).ping()
        return {"status": "ok"}
    except redis.ConnectionError:
        return {"status": "unavailable", "message": "Redis not connected"}
    except Exception as e:
        return {"status": "error", "message": str(e)}


def _erp_sync(db: Session) -> dict:
    """Latest business dates present in the mirrored sales and waste tables."""
    try:
        latest_sales = db.execute(select(func.max(OdooSale.date))).scalar()
        latest_waste = db.execute(select(func.max(OdooWaste.date))).scalar()
    except Exception as e:
        return {"status": "error", "message": str(e)}
    return {
        "status": "ok" if latest_sales else "empty",
        "latest_sales_date": latest_sales.isoformat() if latest_sales else None,
        "latest_waste_date": latest_waste.isoformat() if latest_waste else None,
    }


@router.get("/api/health")
def api_health_check(db: Session = Depends(get_db)):
    """Database (required), Redis and ERP sync freshness (reported only). 503 when the database is down."""
    database = _database(db)
    services = {"database": database, "redis": _redis()}
    if database["status"] != "ok":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "services": services},
        )

    services["erp_sync"] = _erp_sync(db)
    return {"status": "ok", "services": services}
