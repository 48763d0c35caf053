import re
from collections import defaultdict
from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from threading import RLock
from time import monotonic

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


# Team heatmap, stateless compute and per-project heatmap routes.
HEATMAP_PATH_PATTERN = re.compile(r"^(/heatmap(/.*)?|/projects/[^/]+/heatmap/?)$")


class HeatmapRateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window in-memory rate limiter for heatmap endpoints."""

    def __init__(
        self,
        app,
        requests_per_window: int = 30,
        window_seconds: int = 60,
        path_pattern: re.Pattern[str] = HEATMAP_PATH_PATTERN,
    ) -> None:
        super().__init__(app)
        self.max_requests = max(1, requests_per_window)
        self.window_seconds = max(1, window_seconds)
        self.path_pattern = path_pattern
        # One queue of request timestamps per client address.
        self._client_buckets: dict[str, deque[float]] = defaultdict(deque)
        self._lock = RLock()

    def _is_limited_path(self, path: str) -> bool:
        return self.path_pattern.match(path) is not None

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not self._is_limited_path(request.url.path):
            return await call_next(request)

        client = self._client_ip(request)
        now = monotonic()

        with self._lock:
            bucket = self._client_buckets[client]
            cutoff = now - self.window_seconds
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()

            if len(bucket) >= self.max_requests:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too Many Requests"},
                    headers={"Retry-After": str(retry_after)},
                )

            bucket.append(now)

        return await call_next(request)

    @staticmethod
    def _client_ip(request: Request) -> str:
        # Reverse proxies set X-Forwarded-For with the original client first.
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip() or "unknown"

        if request.client and request.client.host:
            return request.client.host

        return "unknown"
