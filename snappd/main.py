"""
Main FastAPI application entry point.
Configures and initializes the snappd upload API.
"""
import time
from fastapi import FastAPI, Request
from loguru import logger
from mangum import Mangum
from snappd.core import config
from snappd.core.exception_handler import register_exception_handlers
from snappd.core.logging import setup_logging
from snappd.api.routes import health_routes, share_routes, upload_routes

setup_logging(config.settings.log_level)

# Create FastAPI application
app = FastAPI(
    title=config.settings.api_title,
    version=config.settings.api_version,
    description="Upload sessions, quota enforcement and short links for shared screenshots",
    root_path=f"/{config.settings.environment}"
)

# Register exception handlers
register_exception_handlers(app)

# Register routes
app.include_router(health_routes.router)
app.include_router(upload_routes.router)
app.include_router(share_routes.router)


@app.middleware("http")
async def log_request(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("{} {} -> {} ({:.1f}ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response

# Lambda handler for AWS
handler = Mangum(app, lifespan="off")


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
