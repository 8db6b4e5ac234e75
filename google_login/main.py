"""
FastAPI application entrypoint.
Wires routing, template rendering and session resolution for the Google login demo.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pymongo.errors import PyMongoError
from pathlib import Path
import asyncio
import logging
import time

from google_login import config
from google_login.db import mongo
from google_login.api.v1 import router as v1_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"
TEMPLATES_DIR = BASE_DIR / "templates"


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await asyncio.to_thread(mongo.ensure_indexes)
    except PyMongoError as e:
        logger.warning(f"Could not create MongoDB indexes at startup: {e}")
    yield


app = FastAPI(title="Google Authentication App", version="1.0.0", lifespan=lifespan)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

v1_router.include_v1_routes(app)


# --- Middleware ---

@app.middleware("http")
async def session_middleware(request: Request, call_next):
    """Resolves the session_id cookie to the user stored in the session."""
    request.state.user = None
    session_id = request.cookies.get(config.SESSION_COOKIE_NAME)

    if session_id:
        try:
            request.state.user = await asyncio.to_thread(mongo.get_session_user, session_id)
        except PyMongoError:
            logger.exception("Session lookup failed; continuing as anonymous.")

    return await call_next(request)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Logs method, path, status and duration of every request."""
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(f"{request.method} {request.url.path} 500 {duration_ms:.1f} ms")
        raise
    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f} ms")
    return response


# --- HTML Routes ---

@app.get("/")
async def index(request: Request):
    """Home page: login link when anonymous, account data when logged in."""
    user = getattr(request.state, "user", None)
    return templates.TemplateResponse(
        request,
        "layout.html",
        {"user": user},
    )
