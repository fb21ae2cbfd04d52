"""
settingstore - FastAPI Application Entry Point
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from settingstore import __version__
from settingstore.config import get_settings
from settingstore.database import get_db, init_db
from settingstore.routers import settings as settings_router
from settingstore.services.exceptions import (
    HistoryKeyMismatchError,
    MalformedImportError,
    SettingNotFoundError,
    SettingValidationError,
    UnauthenticatedError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

# Initialize FastAPI app
settings = get_settings()

app = FastAPI(
    title="settingstore",
    description="Key/value application settings with history, caching and encryption",
    version=__version__,
    debug=settings.debug,
)

# Include routers
app.include_router(settings_router.router, prefix=settings.api_prefix.rstrip("/"))


@app.on_event("startup")
async def startup_event():
    """Create the settings tables if they do not exist yet."""
    init_db()


@app.exception_handler(SettingNotFoundError)
async def not_found_handler(request: Request, exc: SettingNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(SettingValidationError)
async def validation_error_handler(request: Request, exc: SettingValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": "The given data was invalid.", "errors": exc.errors},
    )


@app.exception_handler(HistoryKeyMismatchError)
@app.exception_handler(UnsupportedFormatError)
@app.exception_handler(MalformedImportError)
async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(UnauthenticatedError)
async def unauthenticated_handler(request: Request, exc: UnauthenticatedError):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint that also verifies database connection.
    """
    try:
        db.execute(text("SELECT 1")).fetchone()
        db_status = "connected"
    except Exception as e:
        logger.warning(f"Health check database error: {e}")
        db_status = f"error: {str(e)}"

    return {
        "status": "healthy",
        "database": db_status,
        "debug": settings.debug,
    }
