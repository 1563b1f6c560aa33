"""SpecFlow API server."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from specflow.api.v1.endpoints import health
from specflow.api.v1.router import api_router
from specflow.core.config import settings
from specflow.core.database import close_database, init_database
from specflow.core.exceptions import AppError, ConflictError, NotFoundError, ValidationError
from specflow.utils.logging import get_logger
from specflow.utils.responses import create_error_detail

LOGGER = get_logger(__name__, level=settings.log_level)

CORRELATION_HEADER = "X-Correlation-ID"

# Most specific first; anything else derived from AppError is a 500
ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (ConflictError, status.HTTP_409_CONFLICT, "Conflict"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "Invalid Request"),
)


class ServiceInfo(BaseModel):
    name: str
    version: str
    docs: str
    health: str


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    LOGGER.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    # Serve requests even when the database is late; /health reports it
    try:
        await asyncio.wait_for(init_database(auto_migrate=True), timeout=settings.db_init_timeout)
    except asyncio.TimeoutError:
        LOGGER.error(f"Database not ready after {settings.db_init_timeout}s")
    except (SQLAlchemyError, OSError) as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    LOGGER.info(f"Stopping {settings.app_name}")
    await close_database()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Guided app-specification workflow with step-to-step data flow",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    request.state.correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = request.state.correlation_id
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render service errors as problem details."""
    status_code, title = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"
    for error_type, mapped_status, mapped_title in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code, title = mapped_status, mapped_title
            break

    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        LOGGER.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    else:
        LOGGER.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")

    detail = create_error_detail(title=title, status=status_code, detail=exc.message, request=request)
    return JSONResponse(status_code=status_code, content={"detail": detail.model_dump(mode="json")})


app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/", response_model=ServiceInfo, tags=["Root"], operation_id="get_service_info")
async def root() -> ServiceInfo:
    return ServiceInfo(name=settings.app_name, version=settings.app_version, docs="/docs", health="/health/")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "specflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
