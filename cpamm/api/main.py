"""FastAPI application hosting a single pool."""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cpamm import __version__
from cpamm.api.endpoints import get_pool, router
from cpamm.api.models import ErrorResponse
from cpamm.config import configure_logging
from cpamm.errors import ErrorCode, PoolError
from cpamm.pool import Pool

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("CPAMM_HOST", "0.0.0.0")
PORT = int(os.environ.get("CPAMM_PORT", "8000"))
DEBUG = os.environ.get("CPAMM_DEBUG", "false").lower() in ("true", "1", "yes")

# Failures caused by pool state rather than by the request itself
CONFLICT_CODES = {ErrorCode.ZERO_LIQUIDITY, ErrorCode.INSUFFICIENT_LIQUIDITY}


async def pool_error_handler(_request: Request, exc: PoolError) -> JSONResponse:
    """Render a PoolError as a 400 (or 409) with its stable error code."""
    status_code = 409 if exc.code in CONFLICT_CODES else 400
    body = ErrorResponse(error=exc.code.value, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(pool: Pool | None = None) -> FastAPI:
    """Build the API application.

    Args:
        pool: Pool to serve. If None, the process-wide pool from get_pool()
              is used.
    """
    app = FastAPI(
        title="Constant-Product AMM",
        description="A two-asset constant-product liquidity pool",
        version=__version__,
    )
    app.add_exception_handler(PoolError, pool_error_handler)
    app.include_router(router)

    if pool is not None:
        app.dependency_overrides[get_pool] = lambda: pool

    @app.get("/health")
    async def health() -> dict[str, object]:
        """Health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Run the pool API server.

    Configuration via environment variables:
    - CPAMM_HOST: Host to bind to (default: 0.0.0.0)
    - CPAMM_PORT: Port to bind to (default: 8000)
    - CPAMM_DEBUG: Enable debug logging and reload mode (default: false)
    - CPAMM_FEE_RATE: Trading fee in per-mille (default: 3)
    """
    configure_logging(verbose=DEBUG)
    logger.info("starting_server", host=HOST, port=PORT, debug=DEBUG)
    uvicorn.run(
        "cpamm.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
