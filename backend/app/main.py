from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from app.core.config import settings
from app.core.exceptions import KnuggetError
from app.core.llm import LLMClient
from app.db.session import create_tables, get_db
from app.routes import linkedin, summary, user, website
from app.services.linkedin_service import LinkedinPostService
from app.services.scheduler import SchedulerService
from app.services.summary_service import SummaryService
from app.services.user_service import UserService
from app.services.website_service import WebsiteSummaryService


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_services(app: FastAPI, llm) -> None:
    """Build the service objects once and hang them on app.state for the route dependencies."""
    app.state.llm = llm
    app.state.summary_service = SummaryService(llm)
    app.state.linkedin_service = LinkedinPostService()
    app.state.website_service = WebsiteSummaryService(llm)
    app.state.user_service = UserService()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.app_name} API ({settings.environment})")
    logger.info(f"CORS allow_origins: {settings.cors_origins}")
    await create_tables()

    llm = LLMClient()
    init_services(app, llm)

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = SchedulerService(app.state.summary_service)
        scheduler.start()
    yield
    # Shutdown
    if scheduler is not None:
        scheduler.shutdown()
    await llm.close()
    logger.info("Shutting down API")


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Save and summarize YouTube videos, articles and LinkedIn posts",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - specific origins for credentials support, plus the browser extension
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Accept", "Origin"],
    max_age=86400,
)


@app.exception_handler(KnuggetError)
async def knugget_error_handler(request: Request, exc: KnuggetError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        message = exc.public_message
    else:
        message = exc.message
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": message})


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": "Validation failed", "details": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError):
    return [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]


# Include routers
app.include_router(summary.router, prefix="/api/summary", tags=["summary"])
app.include_router(linkedin.router, prefix="/api/linkedin", tags=["linkedin"])
app.include_router(website.router, prefix="/api/website", tags=["website"])
app.include_router(user.router, prefix="/api/user", tags=["user"])


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name} API",
        "version": "1.0.0",
    }


@app.get("/api/health")
async def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"success": False, "error": "Health check failed", "data": {"status": "unhealthy", "database": "disconnected"}},
        )
    return {"status": "healthy", "service": settings.app_name, "database": "connected"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.environment == "development")
