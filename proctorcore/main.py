"""
Proctoring Integrity Service - FastAPI Application
"""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .proctor.api import router as proctor_router
from .proctor.errors import SessionClosedError
from .utils.logging import Colors, log_error, log_request, log_startup, setup_logger


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Debounced attention and compliance monitoring for proctored sessions",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)


# ============================================================================
# Request Logging Middleware
# ============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    start = time.time()
    method = request.method
    path = request.url.path

    try:
        response = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)

        if path not in ["/health", "/favicon.ico"]:
            log_request(method, path, response.status_code, duration_ms)

        return response
    except Exception as e:
        log_error("RequestError", str(e))
        raise


# CORS middleware - allow all origins for LAN access
# Note: When using allow_origins=["*"], credentials must be False
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SessionClosedError)
async def session_closed_handler(request: Request, exc: SessionClosedError):
    """Observations sent to a stopped session are a client error"""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# Include routers
app.include_router(proctor_router)  # /api/proctor


@app.on_event("startup")
async def startup_event():
    """Configure logging and log service startup."""
    setup_logger("proctorcore", getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    log_startup(settings.APP_NAME, settings.PORT)

    print(f"{Colors.DIM}Configuration:{Colors.RESET}")
    print(f"  Focus window: {Colors.CYAN}{settings.FOCUS_LOST_SECONDS}s{Colors.RESET}")
    print(f"  Absence window: {Colors.CYAN}{settings.ABSENCE_SECONDS}s{Colors.RESET}")
    print(f"  Prohibited items: {Colors.CYAN}{', '.join(settings.PROHIBITED_ITEMS)}{Colors.RESET}")
    print(f"  Item confidence: {Colors.CYAN}> {settings.ITEM_CONFIDENCE_THRESHOLD}{Colors.RESET}")
    print(f"  Debug Mode: {Colors.CYAN}{settings.DEBUG}{Colors.RESET}")
    print()


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "1.0.0"
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "docs": "/docs" if settings.DEBUG else None,
        "proctoring": "/api/proctor"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("proctorcore.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.DEBUG)
