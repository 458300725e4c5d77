# lodge_api/server.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import make_asgi_app
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from lodge_access.config import load_env_file, rate_limit
from lodge_access.errors import AccessDenied
from lodge_access.models import dispose_db_manager, get_db_manager
from lodge_access.security import check_secrets_on_startup
from lodge_api.routes.candidates import router as candidates_router
from lodge_api.routes.lodges import router as lodges_router
from lodge_api.routes.members import router as members_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_env_file()
    check_secrets_on_startup()
    try:
        manager = get_db_manager()
        if manager.health_check():
            logger.info("Database ready")
    except Exception as e:
        logger.warning(f"Could not initialize database: {e}")

    yield

    dispose_db_manager()


app = FastAPI(title="Lodge Directory API", lifespan=lifespan)

limiter = Limiter(key_func=get_remote_address, default_limits=[rate_limit()])
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request, exc):
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded"},
    )


@app.exception_handler(AccessDenied)
def access_denied_handler(request: Request, exc: AccessDenied):
    decision = exc.decision
    return JSONResponse(
        status_code=decision.http_status,
        content={
            "error": decision.reason_code.value,
            "message": decision.message,
            "status": decision.http_status,
        },
    )


app.add_middleware(SlowAPIMiddleware)

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/")
def root():
    return {"message": "Lodge Directory API is running"}


@app.get("/health")
async def health():
    return {"status": "ok"}


app.include_router(candidates_router)
app.include_router(lodges_router)
app.include_router(members_router)
