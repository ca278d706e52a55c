"""
termbank API Server

FastAPI-based REST API for the controlled vocabulary expansion and review
engine.

Features:
- Unrecognized-term frequency tracking and auto-expansion
- AI-recommended and manual candidate submission with conflict checks
- Human review with exact rollback of rewritten analysis records
- Vocabulary mapping for downstream classifiers
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import os
import time

# Load environment variables FIRST (before any imports that might need them)
load_dotenv()

# Setup logging EARLY (before importing application modules that might log)
from .logging_config import setup_logging
logger = setup_logging(log_level=os.getenv("LOG_LEVEL", "INFO"))

from . import __version__
from .routes import vocabulary

app = FastAPI(
    title="termbank API",
    description="Controlled vocabulary expansion and review",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing"""
    start_time = time.time()
    log = logger.debug if request.url.path == "/health" else logger.info

    log(f"→ {request.method} {request.url.path}")
    if request.query_params:
        logger.debug(f"  Query params: {dict(request.query_params)}")

    try:
        response = await call_next(request)
        duration = time.time() - start_time
        log(f"← {request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)")
        return response
    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"← {request.method} {request.url.path} - ERROR ({duration:.3f}s): {e}", exc_info=True)
        raise


app.include_router(vocabulary.router)


@app.get("/health", tags=["health"])
async def health():
    """Simple health check"""
    return {"status": "healthy", "version": __version__}


# For running with uvicorn directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "termbank.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,  # Development only
        log_level="info"
    )
