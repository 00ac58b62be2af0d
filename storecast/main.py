"""
Application entry point: FastAPI app with the platform client lifecycle.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storecast.config import settings
from storecast.infrastructure.observability.logging import get_logger, log_request, setup_logging
from storecast.middleware import RequestContextMiddleware
from storecast.routes import distributions, health
from storecast.services.staffbase.client import StaffbaseClient

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the platform client on startup and close it on shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    if getattr(app.state, "staffbase_client", None) is None:
        app.state.staffbase_client = StaffbaseClient(**settings.get_client_config())
    logger.info("Staffbase client initialized", api_host=settings.api_host())

    yield

    logger.info("Application shutting down")
    try:
        await app.state.staffbase_client.close()
    except Exception as e:
        logger.error("Error closing Staffbase client", error=str(e))
    app.state.staffbase_client = None


app = FastAPI(
    title="Store Announcement Console",
    description="Targeted announcements and task lists for retail stores",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(distributions.router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed input as 400 with the console's error shape."""
    fields = sorted({str(error.get("loc", ["", ""])[-1]) for error in exc.errors()})
    return JSONResponse(status_code=400, content={"error": f"Invalid {', '.join(fields) or 'request'}"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
        request_id=getattr(request.state, "request_id", None),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
