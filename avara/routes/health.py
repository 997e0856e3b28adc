"""
Health check endpoints with database pool monitoring.
"""

import time

from fastapi import APIRouter

from avara.config import settings
from avara.db.pool import db_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "avara-calendar-backend"}


@router.get("/readyz")
async def readyz():
    """Readiness: database pool plus the configuration the calendar flows need."""
    checks = {}

    t0 = time.time()
    db_health = await db_health_check()
    checks["database"] = {
        "ok": db_health.get("healthy", False),
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if not checks["database"]["ok"]:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    if "pool_stats" in db_health:
        checks["database"]["pool_stats"] = db_health["pool_stats"]

    config_issues = []
    if not settings.SUPABASE_DB_URL:
        config_issues.append("SUPABASE_DB_URL not set")
    if not settings.SUPABASE_URL:
        config_issues.append("SUPABASE_URL not set")
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        config_issues.append("SUPABASE_SERVICE_ROLE_KEY not set")
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        config_issues.append("Google OAuth client not configured")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
    }

    overall_ok = all(check["ok"] for check in checks.values())
    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
