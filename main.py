# main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from routers import auth, users, defects
from database import create_tables, test_connection
from services import storage
from services.errors import AuthError, ServiceError
import os
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Defect Reporting API",
    description="API for reporting infrastructure defects and managing their resolution",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded report photos
os.makedirs(storage.UPLOAD_DIR, exist_ok=True)
logger.info(f"Ensured directory exists: {storage.UPLOAD_DIR}")
app.mount(storage.UPLOAD_URL_PREFIX, StaticFiles(directory=storage.UPLOAD_DIR), name="uploads")


# ---------- Error envelope ----------

def error_response(status_code, kind, message, headers=None):
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "kind": kind, "message": message},
        headers=headers,
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc.status_code, exc.kind, "Server error")
    return error_response(exc.status_code, exc.kind, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        problems.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
    return error_response(400, "validation_error", "; ".join(problems) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kinds = {401: "unauthenticated", 403: "forbidden", 404: "not_found"}
    kind = kinds.get(exc.status_code, "server_error" if exc.status_code >= 500 else "validation_error")
    return error_response(exc.status_code, kind, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return error_response(500, "server_error", "Server error")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, "server_error", "Server error")


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info("Starting Defect Reporting API...")

    # Test database connection
    if not test_connection():
        logger.error("Database connection failed! Check DATABASE_URL.")
        logger.warning("Continuing startup despite database issues...")
    else:
        try:
            create_tables()
            logger.info("Database tables created/verified successfully")
        except Exception as e:
            logger.error(f"Error creating database tables: {e}")

    logger.info("Startup completed successfully")

@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown"""
    logger.info("Shutting down Defect Reporting API...")

# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(defects.router)

@app.get("/")
def read_root():
    return {
        "message": "Defect Reporting API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "OK",
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    db_status = test_connection()
    uploads_status = os.path.isdir(storage.UPLOAD_DIR)

    return {
        "status": "healthy" if (db_status and uploads_status) else "degraded",
        "service": "defect-reporting-api",
        "database": "connected" if db_status else "disconnected",
        "uploads": "available" if uploads_status else "missing",
        "version": "1.0.0"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Enable auto-reload during development
        log_level="info"
    )
