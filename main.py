from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import uvicorn
import logging

from config import cors_settings
# Import database
from db.connection import engine, check_database_connection
from db import models

# Import routes
from routes.auth import login, register, password_reset
from routes.crm import crm
from routes.tasks import tasks
from routes.meetings import meetings
from routes.users import users
from Scheduler.otp_scheduler import start_scheduler, shutdown_scheduler, is_scheduler_running
from utils.errors import AppError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting WorkHub CRM Backend...")

    try:
        # 1) DB check + tables
        if not check_database_connection():
            raise Exception("Database connection failed")
        logger.info("✅ Database connection verified")
        models.Base.metadata.create_all(engine)
        logger.info("✅ Database tables created/verified")

        # 2) OTP housekeeping
        start_scheduler()

        logger.info("🎉 Application startup completed successfully!")

    except Exception as e:
        logger.error(f"❌ Application startup failed: {e}")
        raise

    yield

    # === Graceful shutdown ===
    try:
        await shutdown_scheduler()
    except Exception as e:
        logger.warning(f"OTP scheduler stop error: {e}")

    logger.info("🛑 Shutting down WorkHub CRM Backend...")


app = FastAPI(
    title="WorkHub CRM Backend API",
    description="CRM entries, tasks, meetings and user management with JWT and Google sign-in",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(CORSMiddleware, **cors_settings())


# Error rendering: every failure leaves as {statusCode, message}
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"statusCode": exc.status_code, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    parts = []
    for err in errors:
        field = ".".join(str(loc) for loc in err.get("loc", ()) if loc != "body")
        parts.append(f"{field}: {err.get('msg')}" if field else err.get("msg", ""))
    return JSONResponse(
        status_code=422,
        content={"statusCode": 422, "message": "; ".join(parts) or "Validation failed"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"statusCode": status.HTTP_500_INTERNAL_SERVER_ERROR, "message": "Internal server error"},
    )


# Health check endpoint
@app.get("/health")
def health_check():
    try:
        db_status = check_database_connection()
        return {
            "status": "healthy" if db_status else "unhealthy",
            "database": "connected" if db_status else "disconnected",
            "scheduler_running": is_scheduler_running(),
            "version": "1.0.0"
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unhealthy")


# Authentication routes
app.include_router(register.router, prefix=API_PREFIX)
app.include_router(login.router, prefix=API_PREFIX)
app.include_router(password_reset.router, prefix=API_PREFIX)
logger.info("✅ Auth routes registered")

# Core business routes
app.include_router(crm.router, prefix=API_PREFIX)
app.include_router(tasks.router, prefix=API_PREFIX)
app.include_router(meetings.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
logger.info("✅ Core business routes registered")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
