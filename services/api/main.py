"""
PDF Field Signing Service - Backend API
FastAPI with SQLite (default) or JSON file storage.

Install dependencies:
pip install -e .

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""
from fastapi import FastAPI, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
import httpx
import contextvars
import logging
import os
import time
import uuid
from collections import defaultdict
from pathlib import Path

from core.errors import SigningServiceError
from dependencies import get_services, shutdown_services
from settings import get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

# ========== Metrics Storage ==========
request_metrics = {
    "total_requests": defaultdict(int),  # by endpoint
    "total_latency": defaultdict(float),  # by endpoint
    "status_codes": defaultdict(int),  # by status code
    "errors_by_stage": defaultdict(int),
}

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

STORAGE_BACKEND = settings.storage_backend.lower()
ALLOWED_ORIGINS = settings.get_origins_list()
VERSION = "1.0"

logger.info(f"🔧 Storage Backend: {STORAGE_BACKEND.upper()}")

# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title="PDF Field Signing API",
    description="Place fields on PDF pages, burn in values, keep a hash audit trail",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)


@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    request_start_time_var.set(time.time())

    response = await call_next(request)

    latency = time.time() - request_start_time_var.get()
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({round(latency * 1000, 2)} ms) [{request_id}]"
    )

    endpoint = f"{request.method} {request.url.path}"
    request_metrics["total_requests"][endpoint] += 1
    request_metrics["total_latency"][endpoint] += latency
    request_metrics["status_codes"][response.status_code] += 1

    response.headers["X-Request-ID"] = request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========== Error Handling ==========

@app.exception_handler(SigningServiceError)
async def signing_error_handler(request, exc: SigningServiceError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} at stage={exc.stage} doc={exc.document_id}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__}: {exc.message}")
    request_metrics["errors_by_stage"][exc.stage or type(exc).__name__] += 1
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    # Malformed bodies are client errors like any other validation failure
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg', 'invalid request')}" if where else first.get("msg", "invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message, "stage": "request", "document_id": None, "errors": jsonable_errors(errors)},
    )


def jsonable_errors(errors):
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors]


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# ============================================================================
# ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "message": "PDF Field Signing API",
        "version": VERSION,
        "backend": STORAGE_BACKEND,
        "status": "running",
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint (storage reachable + file counts)."""
    services = get_services()
    try:
        services.storage.ping()
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "backend": services.backend, "error": str(e)}
        )
    return {
        "status": "healthy",
        "service": "PDF Field Signing Service",
        "backend": services.backend,
        "version": VERSION,
        "storage": services.files.counts(),
    }


@app.get("/healthz")
async def healthz():
    """
    Liveness probe.
    Returns 200 if the process is running.
    """
    return {
        "status": "ok",
        "timestamp": time.time(),
        "version": VERSION
    }


@app.get("/readyz")
def readyz():
    """
    Readiness probe.
    Returns 200 if storage answers, 503 if not.
    """
    services = get_services()
    try:
        services.storage.ping()
        return {
            "status": "ready",
            "backend": services.backend,
            "source_cache_size": services.source.cache_info()["size"],
            "timestamp": time.time()
        }
    except Exception as e:
        logger.error(f"Readiness check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "backend": services.backend,
                "error": str(e),
                "timestamp": time.time()
            }
        )


@app.get("/stats")
def get_stats():
    """Document and field counts plus the five newest documents."""
    storage = get_services().storage
    recent = storage.list_documents(limit=5)
    return {
        "totalDocuments": storage.count_documents(),
        "totalFields": storage.count_fields(),
        "recentDocuments": [
            {"pdfId": r.document_id, "signedAt": r.signed_at, "createdAt": r.created_at}
            for r in recent
        ],
        "backend": STORAGE_BACKEND,
    }


@app.get("/metrics")
async def get_metrics():
    """
    Get application metrics.
    Returns request counts, latencies, source cache stats and error stages.
    """
    avg_latencies = {}
    for endpoint, total_latency in request_metrics["total_latency"].items():
        count = request_metrics["total_requests"][endpoint]
        avg_latencies[endpoint] = round((total_latency / count) * 1000, 2) if count > 0 else 0

    total_requests = sum(request_metrics["total_requests"].values())
    total_latency = sum(request_metrics["total_latency"].values())

    return {
        "timestamp": time.time(),
        "uptime_seconds": round(time.time() - startup_time, 2),
        "backend": STORAGE_BACKEND,
        "requests": {
            "by_endpoint": dict(request_metrics["total_requests"]),
            "by_status": dict(request_metrics["status_codes"]),
            "total": total_requests,
        },
        "latency": {
            "by_endpoint_ms": avg_latencies,
            "average_ms": round(total_latency / total_requests * 1000, 2) if total_requests > 0 else 0,
        },
        "source_cache": get_services().source.cache_info(),
        "errors_by_stage": dict(request_metrics["errors_by_stage"]),
    }


# ========== PDF Proxy Endpoint ==========
@app.get("/proxy-pdf")
async def proxy_pdf(url: str = Query(None, description="PDF to fetch")):
    """
    Proxy PDF files to avoid CORS issues in the browser viewer.
    """
    if not url:
        raise HTTPException(status_code=400, detail="URL parameter is required")

    logger.info(f"[proxy-pdf] fetching {url}")
    try:
        async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds, follow_redirects=True) as client:
            response = await client.get(url)

            if response.status_code != 200:
                logger.error(f"Failed to fetch PDF: {response.status_code}")
                raise HTTPException(
                    status_code=response.status_code,
                    detail=f"Failed to fetch PDF: HTTP {response.status_code}"
                )

            content_type = response.headers.get("content-type", "")
            if "pdf" not in content_type.lower() and "octet-stream" not in content_type.lower():
                # Still served; some hosts send PDFs without the right header
                logger.warning(f"URL returned non-PDF content: {content_type}")

            logger.info(f"Proxied PDF from {url} ({len(response.content)} bytes)")
            return StreamingResponse(
                iter([response.content]),
                media_type="application/pdf",
                headers={
                    "Access-Control-Allow-Origin": "*",
                    "Cache-Control": "public, max-age=3600",
                    "Content-Length": str(len(response.content))
                }
            )

    except httpx.TimeoutException:
        logger.error(f"Timeout fetching PDF: {url}")
        raise HTTPException(status_code=504, detail="PDF fetch timeout")
    except httpx.RequestError as e:
        logger.error(f"Error fetching PDF: {str(e)}")
        raise HTTPException(status_code=502, detail=f"Failed to fetch PDF: {str(e)}")

# ========== End of PDF Proxy ==========


# Uploaded originals are served as-is
Path(settings.uploaded_pdfs_dir).mkdir(parents=True, exist_ok=True)
app.mount("/uploaded-pdfs", StaticFiles(directory=settings.uploaded_pdfs_dir), name="uploaded-pdfs")

# ========== Routers ==========
from routers import documents as documents_router
app.include_router(documents_router.router)

from routers import fields as fields_router
app.include_router(fields_router.router)

from routers import signing as signing_router
app.include_router(signing_router.router)

from routers import audit as audit_router
app.include_router(audit_router.router)


startup_time = time.time()


@app.on_event("startup")
async def startup_event():
    global startup_time
    startup_time = time.time()
    services = get_services()
    logger.info("PDF Field Signing API starting up...")
    logger.info(f"Storage Backend: {services.backend.upper()}")
    if services.backend == "sqlite":
        logger.info(f"Database: {services.settings.db_url.split('://')[0]}")
    logger.info(f"Uploads: {services.files.uploaded_dir}, signed: {services.files.signed_dir}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("PDF Field Signing API shutting down...")
    shutdown_services()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
