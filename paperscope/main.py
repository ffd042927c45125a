import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from paperscope.config import settings
from paperscope.database import Database
from paperscope.dependencies import AppContext, get_db
from paperscope.errors import ErrorKind, PaperScopeError, from_db_error
from paperscope.models import ErrorResponse, HealthResponse
from paperscope.routers import advanced, auth, authors, catalog, drafts, papers, reviews, venues

API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the application context on startup, close the pool on shutdown"""
    logger.info("Creating database pool...")
    app.state.context = AppContext.from_settings(settings)
    if not settings.recommendations_enabled:
        logger.info("GCP_PROJECT_ID not set, recommendations disabled")
    yield
    logger.info("Shutting down...")
    await app.state.context.close()


# Create FastAPI app
app = FastAPI(
    title="PaperScope API",
    description="API for conference paper submission, review and discovery",
    version=API_VERSION,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 500, 503)
}

# Include routers
app.include_router(papers.router, responses=ERROR_RESPONSES)
app.include_router(reviews.router, responses=ERROR_RESPONSES)
app.include_router(venues.router, responses=ERROR_RESPONSES)
app.include_router(authors.router, responses=ERROR_RESPONSES)
app.include_router(advanced.router, responses=ERROR_RESPONSES)
app.include_router(catalog.router, responses=ERROR_RESPONSES)
app.include_router(auth.router, responses=ERROR_RESPONSES)
app.include_router(drafts.router, responses=ERROR_RESPONSES)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def error_response(error: PaperScopeError) -> JSONResponse:
    if error.status_code >= 500:
        logger.error(f"{error.kind.value}: {error.message} ({error.detail})")
    elif error.detail:
        logger.info(f"{error.kind.value}: {error.message} ({error.detail})")
    body = ErrorResponse(**error.to_body())
    return JSONResponse(status_code=error.status_code, content=body.model_dump())


@app.exception_handler(PaperScopeError)
async def paperscope_error_handler(request: Request, exc: PaperScopeError):
    return error_response(exc)


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    return error_response(from_db_error(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        fields.append({"field": location, "message": error.get("msg", "")})
    return error_response(PaperScopeError(ErrorKind.VALIDATION, "Invalid request parameters", fields=fields))


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(kind=ErrorKind.NOT_FOUND.value, error="Not found").model_dump()
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(kind=ErrorKind.INTERNAL.value, error="Internal server error").model_dump()
    )


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/")
async def root():
    """API banner"""
    return {
        "message": "PaperScope API",
        "version": API_VERSION,
        "docs": "/docs"
    }


@app.get("/api/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health_check(db: Database = Depends(get_db)):
    """Database connectivity check"""
    try:
        ok = await db.ping()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        ok = False

    if not ok:
        return JSONResponse(status_code=500, content=HealthResponse(ok=False, status="disconnected").model_dump())
    return HealthResponse(ok=True)


def run():
    uvicorn.run("paperscope.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
