# Run from project root: uvicorn app.main:app --reload

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.core.config import CORS_ORIGINS, PORT, RATE_LIMIT_PER_MINUTE
from app.core.rate_limit import RateLimiter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


app = FastAPI(title="Catalogue Assistant")
app.state.rate_limiter = RateLimiter(RATE_LIMIT_PER_MINUTE)


@app.middleware("http")
async def log_and_limit(request: Request, call_next):
    logger.info("%s %s ua: %s", request.method, request.url.path, request.headers.get("user-agent", ""))
    client_ip = request.client.host if request.client else "unknown"
    if not app.state.rate_limiter.allow(client_ip):
        return JSONResponse(status_code=429, content={"error": "rate_limited"})
    return await call_next(request)


# Added last so it wraps the rate limiter and 429 responses still carry CORS headers.
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(CORS_ORIGINS),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Agent-Token", "Authorization"],
)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
