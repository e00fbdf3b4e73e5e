# murshid/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from murshid.config import settings
from murshid.core.bootstrap import ensure_default_admin
from murshid.core.db import close_db, init_db
from murshid.core.errors import register_error_handlers
from murshid.core.guard import API_PREFIX, RouteGuardMiddleware
from murshid.logging_config import setup_logging

from murshid.api.v1.routers import auth, conversations, health, results, users

setup_logging(settings.log_level, settings.log_dir)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

# Added innermost first: CORS wraps everything so guard rejections carry CORS headers
app.add_middleware(RouteGuardMiddleware)
# Authlib keeps the OAuth state in the session between redirect and callback
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    same_site="lax",
    https_only=settings.env == "production",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.on_event("startup")
async def on_startup():
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()
    logger.info("[startup] %s ready (env=%s)", settings.APP_NAME, settings.env)


@app.on_event("shutdown")
async def on_shutdown():
    await close_db()


# REST
app.include_router(health.router, prefix=API_PREFIX)
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(conversations.router, prefix=API_PREFIX)
app.include_router(results.router, prefix=API_PREFIX)
