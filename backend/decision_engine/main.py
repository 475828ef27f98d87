"""
Humane Decision Engine - FastAPI Application

Main entry point for the decision generation service.

Pipeline (one call to POST /letters/generate):
- Idempotency-Key → IdempotencyCoordinator (exactly once per key, locked per resource)
- Prompt → GenerationOrchestrator (primary/fallback, timeouts, banned phrases)
- Letter → BiasDetector (jurisdiction-aware scoring)
- Scores → ExplainableCard → signed ExplainableReceipt
- Decision, receipt and audit entries → DecisionStore
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import init_db
from .exceptions import (
    DecisionEngineError,
    IdempotencyConflict,
    ProviderError,
    ProviderTimeoutError,
    SafetyError,
    ValidationError,
)
from .routers import letters_router, receipts_router, templates_router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Humane Decision Engine",
    description="""
    Humane Decision Engine - Candidate Decision Letters

    Generates candidate decision letters exactly once per idempotency key,
    blocks protected-characteristic language before anything is stored,
    and issues a signed, rubric-based explanation of every decision.

    ## Error responses
    - **400** malformed request or idempotency key
    - **409** the same key or resource is already being processed
    - **422** safety violation (includes the rejected letter and warnings)
    - **502** every generation provider failed
    - **504** every generation attempt timed out
    """,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR MAPPING
# =============================================================================

def _error_response(status_code: int, error: DecisionEngineError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error.to_dict()})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error_response(400, exc)


@app.exception_handler(SafetyError)
async def safety_error_handler(request: Request, exc: SafetyError):
    logger.warning(f"Safety violation on {request.url.path}: {exc.message}")
    return _error_response(422, exc)


@app.exception_handler(IdempotencyConflict)
async def idempotency_conflict_handler(request: Request, exc: IdempotencyConflict):
    response = _error_response(409, exc)
    if exc.retry_after:
        response.headers["Retry-After"] = str(max(1, int(round(exc.retry_after))))
    return response


@app.exception_handler(ProviderTimeoutError)
async def provider_timeout_handler(request: Request, exc: ProviderTimeoutError):
    logger.error(f"Generation timed out on {request.url.path}: {exc.message}")
    return _error_response(504, exc)


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    logger.error(f"Generation failed on {request.url.path}: {exc.message}")
    return _error_response(502, exc)


@app.exception_handler(DecisionEngineError)
async def decision_engine_error_handler(request: Request, exc: DecisionEngineError):
    logger.error(f"Unhandled decision engine error on {request.url.path}: {exc.message}")
    return _error_response(500, exc)


# Include routers
app.include_router(letters_router)
app.include_router(templates_router)
app.include_router(receipts_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Humane Decision Engine",
        "version": VERSION,
        "description": "Decision Generation & Compliance Pipeline",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION}


# For running with: python -m decision_engine.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
