import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
import alembic.config
import alembic.command
from app.core.database import engine
from app.core.exceptions import AssistantError, SecurityViolation
from app.core.schemas import ErrorResponse
from app.api.router import api_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def run_migrations():
    """Sync function to run migrations"""
    alembic_cfg = alembic.config.Config("alembic.ini")
    alembic.command.upgrade(alembic_cfg, "head")


# Close the engine once everything is done and close all the sessions
@asynccontextmanager
async def lifespan(app: FastAPI):
    if engine is None:
        logger.error("DATABASE_URL is not set; chat requests will fail until it is")
    else:
        # Apply any pending migrations automatically when the app starts
        try:
            await asyncio.to_thread(run_migrations)
            logger.info("Migrations applied successfully (or already up-to-date)")
        except Exception as e:
            logger.error(f"Migration error during startup: {e}")

    yield
    if engine is not None:
        await engine.dispose()


app = FastAPI(title="DistrIA Assistant API", lifespan=lifespan)


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    # Preflight never reaches the routes
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def error_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(content=message).model_dump(mode="json"),
        headers=CORS_HEADERS,
    )


@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError):
    if isinstance(exc, SecurityViolation):
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.error(f"{request.method} {request.url.path} {type(exc).__name__}: {exc.message}")
    return error_response(exc.message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response("An error occurred")


# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Welcome to the DistrIA Assistant API"}
