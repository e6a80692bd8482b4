import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.cache import cache
from app.config import settings
from app.exceptions import (
    EmailAlreadyRegistered,
    Forbidden,
    InvalidCredentials,
    InvalidInput,
    NotFound,
    StoreUnavailable,
)
from app.middleware import TimingMiddleware
from app.routers import articles, auth

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# passlib warns about the bcrypt version on every import otherwise
logging.getLogger("passlib.handlers.bcrypt").setLevel(logging.ERROR)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The list cache is optional; CacheManager stays disconnected on failure.
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Cache unavailable, continuing without it: %s", exc)
    yield
    await cache.disconnect()

app = FastAPI(
    title="Article Store API",
    description="Per-user article store with authentication and recently-viewed history",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Failure kind -> HTTP status
# ---------------------------------------------------------------------------

def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})

@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return _error(400, exc.message)

@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error(404, exc.message)

@app.exception_handler(Forbidden)
async def forbidden_handler(request: Request, exc: Forbidden):
    if settings.MASK_FORBIDDEN_AS_NOT_FOUND:
        return _error(404, "Article not found")
    return _error(403, exc.message)

@app.exception_handler(EmailAlreadyRegistered)
async def email_registered_handler(request: Request, exc: EmailAlreadyRegistered):
    return _error(409, exc.message)

@app.exception_handler(InvalidCredentials)
async def invalid_credentials_handler(request: Request, exc: InvalidCredentials):
    return _error(401, exc.message)

@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Record store failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(503, "Service temporarily unavailable")

# Routers
app.include_router(auth.router)
app.include_router(articles.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0", "cache": cache.stats}
