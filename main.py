import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError

import database
from auth import router as auth_router
from config import settings
from errors import envelope, register_error_handlers
from routes import routers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.ping()
        database.ensure_indexes(database.db)
    except PyMongoError:
        logger.exception("MongoDB connection failed")
        raise
    yield


app = FastAPI(title="Coaching Institute CMS API", version="1.0.0", lifespan=lifespan)


# -------------------- Rate limiting -------------------- #

class RateLimiter:
    """Fixed-window request counter keyed by client address."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str, at: Optional[float] = None) -> Tuple[bool, int, float]:
        """Count one request; returns (allowed, remaining, window reset time)."""
        at = time.monotonic() if at is None else at
        start, count = self._hits.get(key, (at, 0))
        if at - start >= self.window_seconds:
            start, count = at, 0
        count += 1
        self._hits[key] = (start, count)
        if len(self._hits) > 10000:
            self._prune(at)
        return count <= self.max_requests, max(self.max_requests - count, 0), start + self.window_seconds

    def _prune(self, at: float):
        expired = [k for k, (start, _) in self._hits.items() if at - start >= self.window_seconds]
        for k in expired:
            del self._hits[k]


limiter = RateLimiter(settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW_SECONDS)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    key = request.client.host if request.client else "unknown"
    allowed, remaining, reset_at = limiter.hit(key)
    headers = {
        "RateLimit-Limit": str(limiter.max_requests),
        "RateLimit-Remaining": str(remaining),
        "RateLimit-Reset": str(max(int(reset_at - time.monotonic()), 0)),
    }
    if not allowed:
        return JSONResponse(
            status_code=429,
            content=envelope(False, message="Too many requests, please try again later."),
            headers=headers,
        )
    response = await call_next(request)
    response.headers.update(headers)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------- Security headers -------------------- #

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
}


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


register_error_handlers(app)


# -------------------- Static files & Uploads -------------------- #
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/static", StaticFiles(directory=settings.UPLOAD_DIR), name="static")


# -------------------- Routes -------------------- #

app.include_router(auth_router)
for router in routers:
    app.include_router(router)


@app.get("/api/health")
def health():
    return {
        "status": "OK",
        "message": "Coaching Institute API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# -------------------- Run -------------------- #

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
