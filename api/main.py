"""
Inopay API — Main Application

POST /clean      — Run a full liberation over a project file set
POST /score      — Score a cleaned file set
POST /polyfills  — Compute the compatibility polyfills a file set needs
POST /assist     — LLM-assisted cleaning of a single file
POST /manifest   — Sovereignty manifest (and optional HTML report)
GET  /patterns   — The pattern catalog
GET  /health     — Health check
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from inopay.assistant import assist_clean
from inopay.cache import cleaning_cache
from inopay.config import settings
from inopay.llm.factory import get_provider
from inopay.logging import get_logger, setup_logging
from inopay.manifest import build_manifest, generate_report_html
from inopay.patterns import CATALOG_VERSION, catalog
from inopay.pipeline import clean
from inopay.polyfills import synthesize_polyfills
from inopay.scorer import score_sovereignty
from inopay.schemas.liberation import (
    AssistRequest,
    AssistResponse,
    CleanRequest,
    CleanResponse,
    HealthResponse,
    ManifestRequest,
    ManifestResponse,
    PolyfillRequest,
    PolyfillResponse,
    ReportResponse,
    ScoreRequest,
)

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Inopay API starting", extra={"catalog_version": CATALOG_VERSION})
    yield
    logger.info("Inopay API shutting down")


app = FastAPI(
    title="Inopay Liberation API",
    description="Removes proprietary AI-builder lock-in from exported projects",
    version=f"{settings.ENGINE_VERSION} (catalog {CATALOG_VERSION})",
    lifespan=lifespan,
)

# CORS: set INOPAY_CORS_ORIGINS in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)


# ============================================================
# GLOBAL ERROR HANDLER
# ============================================================

@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    logger.error(
        "Request failed",
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The liberation could not be completed."},
    )


# Lazy LLM provider
_llm = None


def _get_llm():
    global _llm
    if _llm is None:
        _llm = get_provider(settings.LLM_PROVIDER)
    return _llm


def _check_limits(files: dict[str, str]) -> None:
    if len(files) > settings.MAX_FILES:
        raise HTTPException(
            413, f"Too many files: {len(files)} (limit {settings.MAX_FILES})."
        )
    for path, content in files.items():
        if len(content) > settings.MAX_FILE_SIZE_CHARS:
            raise HTTPException(
                413,
                f"File too large: {path} ({len(content)} characters, "
                f"limit {settings.MAX_FILE_SIZE_CHARS}).",
            )


# ============================================================
# ROUTES
# ============================================================

@app.post("/clean", response_model=CleanResponse)
async def clean_project(request: CleanRequest):
    """Run the full cleaning pipeline over a project."""
    _check_limits(request.files)
    result = await asyncio.to_thread(
        clean,
        request.files,
        request.files_to_remove,
        verify=request.verify and settings.VERIFY,
        workers=settings.WORKERS or None,
        cache=cleaning_cache,
    )
    return result.to_dict()


@app.post("/score", response_model=ReportResponse)
async def score_project(request: ScoreRequest):
    """Score a cleaned file set without modifying it."""
    _check_limits(request.cleaned)
    report = score_sovereignty(request.original, request.cleaned)
    return report.to_dict()


@app.post("/polyfills", response_model=PolyfillResponse)
async def polyfills(request: PolyfillRequest):
    """Return the polyfill files a cleaned set still needs."""
    _check_limits(request.cleaned)
    bundle = synthesize_polyfills(request.cleaned, request.original)
    return {"hooks": list(bundle.hooks), "generated": bundle.generated}


@app.post("/assist", response_model=AssistResponse)
async def assist(request: AssistRequest):
    """LLM-assisted cleaning of one file."""
    _check_limits({request.path: request.content})
    result = await assist_clean(request.path, request.content, llm=_get_llm())
    if result.get("error"):
        logger.warning(
            "Assisted cleaning returned an error",
            extra={"path": request.path, "error": result["error"]},
        )
    return result


@app.post("/manifest", response_model=ManifestResponse)
async def manifest(request: ManifestRequest):
    """Hash the cleaned tree and stamp it with its sovereignty score."""
    _check_limits(request.cleaned)
    report = score_sovereignty(None, request.cleaned)
    body = {"manifest": build_manifest(request.project_name, request.cleaned, report)}
    if request.include_report:
        body["report_html"] = generate_report_html(request.project_name, report)
    return body


@app.get("/patterns")
async def get_patterns():
    """Return the pattern catalog."""
    return catalog.get_patterns()


@app.get("/health", response_model=HealthResponse)
async def health():
    return {
        "status": "operational",
        "version": settings.ENGINE_VERSION,
        "catalog_version": CATALOG_VERSION,
        "llm_provider": settings.LLM_PROVIDER,
        "cache": cleaning_cache.stats,
    }


# ============================================================
# REQUEST ENVELOPE
# ============================================================

_RESPONSE_HEADERS = {
    "X-Inopay-Version": settings.ENGINE_VERSION,
    "X-Catalog-Version": CATALOG_VERSION,
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def _declared_size(request: Request) -> int:
    try:
        return int(request.headers.get("content-length", "0"))
    except ValueError:
        return 0


@app.middleware("http")
async def request_envelope(request: Request, call_next):
    """Body size gate, version and security headers, one log line per call."""
    started = time.perf_counter()
    if _declared_size(request) > settings.MAX_BODY_MB * 1_048_576:
        response = JSONResponse(
            status_code=413,
            content={"detail": f"Request body exceeds {settings.MAX_BODY_MB} MB."},
        )
    else:
        response = await call_next(request)
    response.headers.update(_RESPONSE_HEADERS)

    if request.url.path != "/health":
        elapsed = round((time.perf_counter() - started) * 1000, 1)
        logger.info(
            "%s %s -> %d", request.method, request.url.path, response.status_code,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": elapsed,
            },
        )
    return response
