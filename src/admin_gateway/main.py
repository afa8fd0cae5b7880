import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admin_gateway.config import settings
from admin_gateway.db import get_db
from admin_gateway.exceptions import GatewayError
from admin_gateway.logging_config import LoggingMiddleware, logger, setup_logging
from admin_gateway.mail_client import init_mail_transport
from admin_gateway.rate_limiting import setup_rate_limiting
from admin_gateway.routers import admin_user_routes, payment_routes, verification_routes
from admin_gateway.supabase_client import (
    close_supabase_clients,
    get_supabase_admin_client,
    get_supabase_client,
    init_supabase_clients,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Creates the process-wide identity provider clients and mail transport."""
    logger.info("Application startup sequence initiated.")

    try:
        await init_supabase_clients()
    except Exception as e:
        logger.error(
            f"Failed to initialize Supabase clients: {e.__class__.__name__}: {str(e)}"
        )
        # The health check reports missing clients.

    init_mail_transport(settings)
    logger.info("Application startup complete.")

    yield

    logger.info("Application shutdown sequence initiated.")
    await close_supabase_clients()
    logger.info("Application shutdown complete.")


app = FastAPI(
    title="Admin Gateway API",
    description="Admin accounts, email verification, notifications and subscription payments for the admin dashboard.",
    version="1.0.0",
    root_path=settings.ROOT_PATH,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Admin Users",
            "description": "Admin account creation, login and authorization claims.",
        },
        {
            "name": "Email Verification",
            "description": "Verification codes, password resets and contact emails.",
        },
        {
            "name": "Payments",
            "description": "PayFast checkout signing and payment notifications.",
        },
    ],
)

app.startup_time = time.time()

setup_logging(app)
setup_rate_limiting(app)

# Added after the request-id middleware so log lines carry the id.
app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_user_routes.router)
app.include_router(verification_routes.router)
app.include_router(payment_routes.router)


# Exception handlers
@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(f"HTTPException: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(f"ValidationError: {errors}")
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request.")
    return JSONResponse(
        status_code=400,
        content={
            "error": f"{field}: {message}" if field else message,
            "details": jsonable_encoder(errors),
        },
    )


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root():
    return "Welcome to the admin dashboard!"


@app.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    """
    Reports the API, database and identity provider client status.

    Always answers 200 while the API runs; a failing component is reported
    in ``components`` and flips the top-level status to ``degraded``.
    """
    response = {
        "status": "ok",
        "version": app.version,
        "environment": settings.ENVIRONMENT.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(time.time() - app.startup_time, 2),
        "components": {"api": {"status": "ok"}},
    }

    try:
        await db.execute(text("SELECT 1"))
        response["components"]["database"] = {"status": "ok"}
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        response["components"]["database"] = {
            "status": "error",
            "error": e.__class__.__name__,
        }

    for name, getter in (
        ("supabase", get_supabase_client),
        ("supabase_admin", get_supabase_admin_client),
    ):
        try:
            getter()
            response["components"][name] = {"status": "ok"}
        except RuntimeError:
            response["components"][name] = {"status": "error", "error": "not initialized"}

    if any(c["status"] != "ok" for c in response["components"].values()):
        response["status"] = "degraded"
    return response
