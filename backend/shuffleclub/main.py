import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from shuffleclub.database import engine, init_db
from shuffleclub.db_schema_patch import ensure_final_match_columns, ensure_match_columns, ensure_player_columns
from shuffleclub.routes import (
    admin,
    auth,
    finals,
    league,
    matches,
    notices,
    players,
    public,
    teams,
    tournaments,
)
from shuffleclub.services.seed import ensure_bootstrap_admin, ensure_def_player

logger = logging.getLogger(__name__)

APP_NAME = "Shuffleboard Club API"

app = FastAPI(title=APP_NAME)


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except Exception:
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()] or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error envelope: every failure is {"ok": false, "message": ...}
# ============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"ok": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"ok": False, "message": "Internal server error"})


# Include routers
app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(players.router, prefix="/api", tags=["players"])
app.include_router(teams.router, prefix="/api", tags=["teams"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(league.router, prefix="/api", tags=["league"])
app.include_router(finals.router, prefix="/api", tags=["finals"])
app.include_router(notices.router, prefix="/api", tags=["notices"])

# Public read-only endpoints (no auth)
app.include_router(public.router, prefix="/api", tags=["public"])

# Backup/restore and ranking settings
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.on_event("startup")
def on_startup():
    init_db()
    ensure_player_columns(engine)
    ensure_match_columns(engine)
    ensure_final_match_columns(engine)

    with Session(engine) as session:
        ensure_def_player(session)
        ensure_bootstrap_admin(session)

    route_count = 0
    for r in app.routes:
        path = getattr(r, "path", None)
        if path:
            methods = getattr(r, "methods", None)
            logger.info("%-20s %s", ", ".join(sorted(methods)) if methods else "N/A", path)
            route_count += 1
    logger.info("Total routes: %d, build hash: %s", route_count, BUILD_HASH)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"ok": True, "app_name": APP_NAME, "build": BUILD_HASH, "status": "ok"}
