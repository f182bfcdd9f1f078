"""
Login API: runs site login attempts in a real browser and reports the outcome
"""

import asyncio
import logging
import time
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .credentials import load_credentials
from .driver import LoginDriver
from .errors import ConfigurationError, UnknownProfile
from .profiles import available_profiles, get_profile
from .report import post_outcome
from .screens import artifact_png_response
from .settings import Settings, settings

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Site Login API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request models
class LoginRequest(BaseModel):
    deadline_s: Optional[float] = Field(None, gt=0)
    headless: Optional[bool] = None
    session_id: Optional[str] = None

def get_settings() -> Settings:
    return settings

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"ok": True, "status": "healthy", "timestamp": time.time()}

@app.get("/profiles")
async def list_profiles(cfg: Settings = Depends(get_settings)):
    """Known site profiles"""
    try:
        profiles = available_profiles(cfg.PROFILES_FILE)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "profiles": [
            {"name": p.name, "login_url": p.login_url, "env_prefix": p.env_prefix}
            for p in profiles.values()
        ]
    }

@app.post("/login/{site}")
async def run_login(site: str, request: Optional[LoginRequest] = None, cfg: Settings = Depends(get_settings)):
    """Run one login attempt for a site and return its outcome"""
    request = request or LoginRequest()
    try:
        profile = get_profile(site, cfg.PROFILES_FILE)
    except UnknownProfile as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    try:
        credentials = load_credentials(profile.env_prefix)
    except ConfigurationError as e:
        logger.error(f"Configuration error for {site}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    overrides = {}
    if request.deadline_s is not None:
        overrides["DEADLINE_S"] = request.deadline_s
    if request.headless is not None:
        overrides["HEADLESS"] = request.headless
    run_settings = cfg.model_copy(update=overrides)

    logger.info(f"Running login attempt for {site}")
    events = asyncio.Queue()
    outcome = await LoginDriver(profile, credentials, run_settings, events).run()
    logger.info(f"Login attempt for {site} finished: {outcome.kind}")

    collected = []
    while not events.empty():
        collected.append(asdict(events.get_nowait()))

    if cfg.CONTROL_PLANE_URL:
        await asyncio.to_thread(
            post_outcome, cfg.CONTROL_PLANE_URL, cfg.CONTROL_PLANE_TOKEN, site, outcome, request.session_id
        )

    return {"site": site, "outcome": outcome.model_dump(mode="json"), "events": collected}

@app.get("/artifacts/{name}")
async def get_artifact(name: str, cfg: Settings = Depends(get_settings)):
    """Return a captured diagnostic screenshot"""
    return artifact_png_response(name, cfg)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
