# src/goaltracker_ui/main.py

import logging

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from .config import PACKAGE_DIR, settings
from .log_config import setup_logging
from .router import Route

logger = logging.getLogger(__name__)

# --- FastAPI App Setup ---
app = FastAPI(
    title="Goal Tracker UI",
    description="Serves the hash-routed goal tracker shell with its public runtime configuration.",
    version="0.1.0",
)

templates = Jinja2Templates(directory=PACKAGE_DIR / "templates")


def public_config() -> dict:
    """Configuration the browser may see. Never add secrets here."""
    return {
        "apiBaseUrl": settings.API_BASE_URL,
        "supabaseUrl": settings.SUPABASE_URL,
        "supabaseAnonKey": settings.SUPABASE_ANON_KEY,
        "authCallbackUrl": settings.AUTH_CALLBACK_URL,
        "homeRoute": Route.HOME.value,
        "routes": [route.value for route in Route],
    }


# --- Favicon Route ---
@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    favicon_path = PACKAGE_DIR / "static" / "favicon.ico"
    if favicon_path.is_file():
        return FileResponse(favicon_path, media_type="image/x-icon")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/config.json")
async def config_json() -> JSONResponse:
    return JSONResponse(public_config())


# --- Shell ---
@app.get("/", response_class=HTMLResponse)
async def read_root(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {"config": public_config()},
    )


# --- Startup Event ---
@app.on_event("startup")
async def startup_event():
    setup_logging()
    logger.info("Goal Tracker UI starting up")
    logger.info("API base URL: %s", settings.API_BASE_URL)
    logger.info("Auth base URL: %s", settings.AUTH_BASE_URL)
    if not settings.SUPABASE_ANON_KEY:
        logger.warning("SUPABASE_ANON_KEY is not set; sign-in requests will be rejected by the provider.")
