from __future__ import annotations
from typing import Optional, List, Any
import logging
import math
from fastapi import FastAPI, File, UploadFile, Form, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import numpy as np
from gaitlab.config.settings import settings
from gaitlab.config.modes import available_gait_modes, get_gait_mode_config
from gaitlab.config.constants import JOINTS
from gaitlab.errors import GaitLabError
from gaitlab.math.rom import RomEngine
from gaitlab.pipeline.analysis import run_cycle_analysis, run_joint_analysis
from gaitlab.pipeline.generators import generate_gait_recording, make_rng
from gaitlab.pipeline.io_utils import read_angles_bytes, recording_from_frame

logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gaitlab.api")

app = FastAPI(
    title=settings.app_name,
    docs_url=("/docs" if settings.docs_enabled else None),
    redoc_url=("/redoc" if settings.docs_enabled else None),
    openapi_url=("/openapi.json" if settings.openapi_enabled else None),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=settings.allow_credentials,
    allow_methods=list(settings.allowed_methods),
    allow_headers=list(settings.allowed_headers),
)

# Compression for large JSON responses and CSV strings
app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_min_size)

# Restrict Host headers when ALLOWED_HOSTS is set to specific values
if settings.allowed_hosts and settings.allowed_hosts != ("*",):
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=list(settings.allowed_hosts))


# JSON-safe converter (numpy arrays, scalars, nested); NaN/inf become null
def to_json_safe(obj: Any):
    if isinstance(obj, np.ndarray):
        return to_json_safe(obj.tolist())
    if isinstance(obj, (np.generic,)):
        return to_json_safe(obj.item())
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, dict):
        return {k: to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_safe(x) for x in obj]
    return obj


@app.exception_handler(GaitLabError)
async def gaitlab_error_handler(request: Request, exc: GaitLabError):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


class RomRequest(BaseModel):
    mode: str = Field(default_factory=lambda: settings.default_mode)
    left: List[float]
    right: List[float]


def _check_joint(joint: str) -> str:
    j = joint.strip().lower()
    if j not in JOINTS:
        raise HTTPException(status_code=404, detail=f"Unknown joint '{joint}'. Expected one of {list(JOINTS)}")
    return j


@app.get("/api/modes")
async def list_modes():
    return JSONResponse({"modes": available_gait_modes(), "default": settings.default_mode})


@app.get("/api/analysis")
async def analysis_info():
    return JSONResponse({
        "message": "Gait ROM analysis API",
        "joints": list(JOINTS),
        "modes": [m["value"] for m in available_gait_modes()],
        "endpoints": {
            "POST /api/analysis/cycles": "Cycle detection and bilateral ROM from an angle CSV (or a synthetic recording)",
            "POST /api/analysis/{joint}": "Synthetic single-cycle analysis for hip, knee or ankle",
            "POST /api/rom/{joint}": "Bilateral ROM for posted left/right angle series",
        },
    })


@app.post("/api/analysis/cycles")
async def analyze_cycles(
    mode: Optional[str] = Form(None),
    smooth: bool = Form(False),
    cycle_bounds: str = Form("fixed"),
    seed: Optional[int] = Form(None),
    file: Optional[UploadFile] = File(None),
):
    """Run the cycle pipeline on an uploaded angle table, or on a synthetic recording when none is given."""
    config = get_gait_mode_config(mode or settings.default_mode)
    if file is not None and getattr(file, "filename", ""):
        data_bytes = await file.read()
        if len(data_bytes) > int(settings.max_upload_mb) * 1024 * 1024:
            raise HTTPException(status_code=413, detail=f"Upload exceeds limit of {settings.max_upload_mb} MB")
        df = read_angles_bytes(data_bytes)
        recording = recording_from_frame(df, config.frame_rate)
        source = file.filename
    else:
        rng = make_rng(seed if seed is not None else settings.random_seed)
        recording = generate_gait_recording(frame_rate=config.frame_rate, rng=rng, config=config)
        source = "synthetic"

    options: dict = {"smooth": bool(smooth), "cycle_bounds": cycle_bounds}
    results = run_cycle_analysis(recording, config, options)
    results["source"] = source
    return JSONResponse(content=to_json_safe(results))


@app.post("/api/analysis/{joint}")
async def analyze_joint(
    joint: str,
    mode: Optional[str] = Form(None),
    duration_s: float = Form(10.0),
    seed: Optional[int] = Form(None),
):
    j = _check_joint(joint)
    results = run_joint_analysis(
        j,
        mode or settings.default_mode,
        duration_s,
        seed if seed is not None else settings.random_seed,
    )
    return JSONResponse(content=to_json_safe(results))


@app.post("/api/rom/{joint}")
async def joint_rom(joint: str, body: RomRequest):
    j = _check_joint(joint)
    engine = RomEngine(j, body.mode)
    return JSONResponse(content=to_json_safe(engine.rom_summary(body.left, body.right)))


@app.get("/")
async def read_index():
    return JSONResponse({"status": "ok", "app": settings.app_name})


# Quiet Chrome/Edge DevTools probes (prevent 404 spam in logs)
@app.get("/.well-known/appspecific/com.chrome.devtools.json")
async def chrome_devtools_probe():
    return Response(status_code=204)


# Simple health check endpoint for local probes
@app.get("/health")
async def health():
    return JSONResponse({"status": "ok"})
