import time
from collections import defaultdict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit_per_minute: int = 600, token_limit_per_minute: int = 60):
        super().__init__(app)
        self.limit = limit_per_minute
        self.token_limit = token_limit_per_minute
        # (IP, bucket) -> [timestamp1, timestamp2, ...], per process
        self.requests = defaultdict(list)
        self._last_sweep = time.time()

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        now = time.time()

        # Grant issuance gets its own, stricter bucket
        if request.url.path.endswith("/stream/token") and request.method == "POST":
            key, limit = (client_ip, "token"), self.token_limit
        else:
            key, limit = (client_ip, "default"), self.limit

        self._evict_stale(now)
        self.requests[key] = [t for t in self.requests[key] if now - t < 60]

        if len(self.requests[key]) >= limit:
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again later."}
            )

        self.requests[key].append(now)

        response = await call_next(request)
        return response

    def _evict_stale(self, now: float):
        """Drop clients with no request inside the window, at most once a minute."""
        if now - self._last_sweep < 60:
            return
        self._last_sweep = now
        for key in [k for k, stamps in self.requests.items() if not stamps or now - stamps[-1] >= 60]:
            del self.requests[key]
