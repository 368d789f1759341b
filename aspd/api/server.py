"""
ASPD Engine: Tool-Dispatch API Server
=====================================

Exposes the pipeline and its diagnostics as named operations.

Endpoints:
- GET  /api/v1/tools          -> Exposed tool list
- POST /api/v1/process        -> Run the pipeline
- GET  /api/v1/invariant      -> Invariant diagnostic
- POST /api/v1/recalibrate    -> Adjust capability
- GET  /api/v1/filter/stats   -> Heat shield counters
- POST /api/v1/filter/reset   -> Reset heat shield counters
- GET  /api/v1/status         -> Engine status
- POST /api/v1/precision      -> Precision validation
- GET  /api/v1/audit          -> Recent audit entries

Usage:
    uvicorn aspd.api.server:app --reload
"""
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..engine import AspdEngine, EngineConfig
from ..calibration import CalibrationConfig
from ..contracts.base import ConfigurationError, MalformedInputError
from ..contracts.report import ProcessOptions
from .mapper import map_result_to_dto

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

DEFAULT_MAX_INPUT_CHARS = 15000

# Global Engine Instance
engine_instance: Optional[AspdEngine] = None
max_input_chars: int = DEFAULT_MAX_INPUT_CHARS


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def build_engine_from_env() -> AspdEngine:
    """Build an engine whose calibration comes from ASPD_* env vars."""
    defaults = CalibrationConfig()
    calibration = CalibrationConfig(
        capability=_env_float("ASPD_CAPABILITY", defaults.capability),
        safety_margin=_env_float("ASPD_SAFETY_MARGIN", defaults.safety_margin),
    )
    return AspdEngine(EngineConfig(calibration=calibration))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the engine on startup."""
    global engine_instance, max_input_chars

    max_input_chars = int(_env_float("ASPD_MAX_INPUT_CHARS", DEFAULT_MAX_INPUT_CHARS))

    print(f"[*] Initializing ASPD engine (max input: {max_input_chars} chars)")

    try:
        engine_instance = build_engine_from_env()
        print("[*] Engine initialized successfully.")
    except ConfigurationError as e:
        print(f"[!] FAILED to initialize engine: {e}")
        raise

    yield

    print("[*] Shutting down engine.")
    engine_instance = None

app = FastAPI(
    title="ASPD Engine API",
    version="0.1.0",
    description="Social padding filter, context detection and padding selection",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(MalformedInputError)
async def malformed_input_handler(request: Request, exc: MalformedInputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _engine() -> AspdEngine:
    if not engine_instance:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine_instance


# =============================================================================
# REQUEST MODELS
# =============================================================================

class ProcessRequest(BaseModel):
    text: str
    branch: str = "professional"
    level: Optional[str] = None


class RecalibrateRequest(BaseModel):
    capability: float


class PrecisionRequest(BaseModel):
    samples: Optional[List[str]] = None


TOOLS = [
    {
        "name": "aspd_process_text",
        "method": "POST",
        "path": "/api/v1/process",
        "description": "Filter, classify, detect context and apply calibrated padding",
    },
    {
        "name": "aspd_validate_invariant",
        "method": "GET",
        "path": "/api/v1/invariant",
        "description": "Check capability + safety_margin == ceiling",
    },
    {
        "name": "aspd_recalibrate",
        "method": "POST",
        "path": "/api/v1/recalibrate",
        "description": "Set a new capability and return the fresh invariant check",
    },
    {
        "name": "aspd_filter_stats",
        "method": "GET",
        "path": "/api/v1/filter/stats",
        "description": "Cumulative heat shield hit counter",
    },
    {
        "name": "aspd_filter_reset",
        "method": "POST",
        "path": "/api/v1/filter/reset",
        "description": "Reset the heat shield hit counter",
    },
    {
        "name": "aspd_engine_status",
        "method": "GET",
        "path": "/api/v1/status",
        "description": "Engine status and diagnostics",
    },
    {
        "name": "aspd_validate_precision",
        "method": "POST",
        "path": "/api/v1/precision",
        "description": "Validate the safety margin across sample inputs",
    },
    {
        "name": "aspd_audit_log",
        "method": "GET",
        "path": "/api/v1/audit",
        "description": "Recent audit log entries",
    },
]


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    _engine()
    return {"status": "online", "mode": "aspd"}

@app.get("/api/v1/tools")
async def list_tools():
    return {"tools": TOOLS}

@app.post("/api/v1/process")
async def process_text(body: ProcessRequest):
    """
    Run one pass through the pipeline.
    Oversized input is refused before the engine sees it.
    """
    engine = _engine()
    if len(body.text) > max_input_chars:
        raise HTTPException(
            status_code=413,
            detail=f"Input exceeds {max_input_chars} characters"
        )
    options = ProcessOptions(branch=body.branch, level=body.level)
    result = engine.process(body.text, options)
    return map_result_to_dto(result)

@app.get("/api/v1/invariant")
async def validate_invariant():
    check = _engine().validate_invariant()
    return {**check.to_dict(), "message": check.message}

@app.post("/api/v1/recalibrate")
async def recalibrate(body: RecalibrateRequest):
    check = _engine().recalibrate(body.capability)
    return {**check.to_dict(), "message": check.message}

@app.get("/api/v1/filter/stats")
async def filter_stats():
    return _engine().get_filter_stats().to_dict()

@app.post("/api/v1/filter/reset")
async def filter_reset():
    previous = _engine().reset_filter_stats()
    return {"previous": previous.to_dict(), "current": _engine().get_filter_stats().to_dict()}

@app.get("/api/v1/status")
async def engine_status():
    return _engine().engine_status()

@app.post("/api/v1/precision")
async def validate_precision(body: Optional[PrecisionRequest] = None):
    samples = body.samples if body else None
    return _engine().validate_precision(samples)

@app.get("/api/v1/audit")
async def audit_log(limit: int = 100, layer: Optional[str] = None):
    """Most recent audit entries, newest last."""
    engine = _engine()
    if limit < 1:
        raise HTTPException(status_code=422, detail="limit must be positive")
    entries = engine.get_audit_log(layers=[layer] if layer else None)
    return {
        "entries": [e.to_dict() for e in entries[-limit:]],
        "report": engine.get_audit_report(),
    }
