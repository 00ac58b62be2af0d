"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Request

from storecast.config import settings

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "storecast"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness check: platform settings present and directory reachable."""
    checks = {}

    config_ok = all(
        [
            settings.STAFFBASE_BASE_URL,
            settings.STAFFBASE_TOKEN,
            settings.STAFFBASE_SPACE_ID,
            settings.HIDDEN_ATTRIBUTE_KEY,
        ]
    )
    checks["config"] = {"ok": bool(config_ok), "api_host": settings.api_host()}

    t0 = time.time()
    client = getattr(request.app.state, "staffbase_client", None)
    if client is None:
        checks["staffbase"] = {"ok": False, "error": "client not initialized"}
    else:
        health = await client.health_check()
        checks["staffbase"] = {
            "ok": health.get("healthy", False),
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if not health.get("healthy"):
            checks["staffbase"]["error"] = health.get("error")

    overall_ok = all(check["ok"] for check in checks.values())
    return {"overall_ok": overall_ok, "checks": checks}
