"""
FastAPI Backend for Mockify
Study materials in, AI-generated mock exams out
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mockify.routes import auth, materials, search, mock_tests, progress, practice, tutor
from mockify.routes import config as config_routes
from mockify.config import settings
from mockify.core import BaseAPIException
from mockify.database import init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events"""
    # Startup
    logger.info("Starting Mockify API...")
    logger.info(f"Environment: {'development' if settings.DEBUG else 'production'}")

    # Ensure directories exist
    for directory in [settings.DATA_DIR, settings.LOGS_DIR, settings.upload_dir]:
        directory.mkdir(parents=True, exist_ok=True)

    init_db()

    yield

    # Shutdown
    logger.info("Shutting down Mockify API...")


app = FastAPI(
    title="Mockify API",
    description="Turn study documents into AI-generated mock exams",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS configuration for the web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions"""
    content = {
        "success": False,
        "error": exc.detail,
        "error_code": exc.error_code
    }
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        content["retry_after"] = retry_after

    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred",
            "error_code": "INTERNAL_ERROR"
        }
    )


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(materials.router, prefix="/api/materials", tags=["Materials"])
app.include_router(search.router, prefix="/api/search", tags=["Search"])
app.include_router(mock_tests.router, prefix="/api/tests", tags=["Mock Tests"])
app.include_router(progress.router, prefix="/api/progress", tags=["Progress"])
app.include_router(practice.router, prefix="/api/practice", tags=["Practice"])
app.include_router(tutor.router, prefix="/api/tutor", tags=["Tutor"])
app.include_router(config_routes.router, prefix="/api/config", tags=["Configuration"])


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "name": "Mockify API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "mockify.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
