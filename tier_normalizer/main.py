from typing import Any

from fastapi import Body, Depends, FastAPI, File, HTTPException, UploadFile
from .log import setup_logging
from .models import HealthResponse, NormalizeResponse, TierAnalysis
from .normalize import (
    PayloadDecodeError,
    analyze_tier_structure,
    check_nesting_depth,
    normalize_json_bytes,
)
from .settings import Settings, get_settings

logger = setup_logging(get_settings().log_level)

app = FastAPI(
    title="tier-normalizer",
    description="Renames nested ...List tiers to Tier1_List, Tier2_List, ..., BranchesList",
    version="0.1.0",
)

@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}

@app.post("/analyze", response_model=TierAnalysis)
def analyze(
    payload: Any = Body(None),
    settings: Settings = Depends(get_settings),
):
    try:
        check_nesting_depth(payload, settings.max_nesting_depth)
    except PayloadDecodeError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return analyze_tier_structure(payload)

@app.post("/normalize", response_model=NormalizeResponse)
async def normalize_json(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
):
    if not (file.filename or "").lower().endswith(".json"):
        raise HTTPException(status_code=422, detail="Only JSON files are supported")

    # one byte past the limit is enough to know it is over
    raw = await file.read(settings.max_upload_bytes + 1)
    if len(raw) > settings.max_upload_bytes:
        logger.warning("rejected %s: over limit %d bytes", file.filename, settings.max_upload_bytes)
        raise HTTPException(status_code=413, detail="File too large")

    try:
        return normalize_json_bytes(raw, settings.max_nesting_depth)
    except PayloadDecodeError as exc:
        logger.warning("rejected %s: %s", file.filename, exc)
        raise HTTPException(status_code=422, detail=str(exc))
