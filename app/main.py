import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .config import settings
from .db import close_client, init_db
from .exceptions import AppError
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, SecurityHeadersMiddleware
from .routers.admin import router as admin_router
from .routers.auth import router as auth_router
from .routers.blogs import router as blogs_router
from .routers.categories import router as categories_router
from .routers.contact import router as contact_router
from .routers.newsletter import router as newsletter_router
from .routers.pages import router as pages_router
from .routers.sitemap import router as sitemap_router
from .routers.users import router as users_router
from .utils import error_response

logger = logging.getLogger(__name__)


# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Initializing database connection...")
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Requests retry the initialization through ensure_db
        logger.warning(f"Database initialization warning: {str(e)}")

    yield

    close_client()
    logger.info("Database client closed")


app = FastAPI(
    title=f"{settings.SITE_NAME} API",
    description="Backend API for the Daily World Blog platform",
    version="1.0.0",
    lifespan=lifespan,
)

# Added in reverse: the error handler wraps everything else
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ErrorHandlingMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.error})")
    return JSONResponse(
        status_code=exc.status_code, content=error_response(exc.message, exc.error)
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content=error_response("Validation failed", details))


# Include routers
app.include_router(auth_router)
app.include_router(blogs_router)
app.include_router(categories_router)
app.include_router(users_router)
app.include_router(admin_router)
app.include_router(newsletter_router)
app.include_router(contact_router)
app.include_router(pages_router)
app.include_router(sitemap_router)


# Health check endpoints
@app.get("/")
async def root():
    return {"success": True, "message": f"{settings.SITE_NAME} API is running!"}


@app.get("/health")
async def health_check():
    return {"success": True, "status": "healthy", "service": "daily-world-blog-api"}


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
