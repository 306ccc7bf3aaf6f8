# ===== app/api/middleware/rate_limit_middleware.py =====
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import logging
import time

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client sliding-window limit on anonymous booking requests.

    Only POSTs under ``path_prefix`` ending in ``/bookings`` are counted;
    everything else passes straight through.
    """

    def __init__(
            self,
            app,
            requests_per_window: int = 20,
            window_seconds: float = 60.0,
            path_prefix: str = "/api/v1/public/"
    ):
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.path_prefix = path_prefix
        self.request_times = {}  # In production, use Redis

    def _is_limited_route(self, request: Request) -> bool:
        path = request.url.path.rstrip("/")
        return (
            request.method == "POST"
            and path.startswith(self.path_prefix)
            and path.endswith("/bookings")
        )

    def _prune(self, current_time: float) -> None:
        """Forget clients whose newest attempt has left the window"""
        idle = [
            client_id for client_id, times in self.request_times.items()
            if not times or current_time - times[-1] >= self.window_seconds
        ]
        for client_id in idle:
            del self.request_times[client_id]

    async def dispatch(self, request: Request, call_next):
        if not self._is_limited_route(request):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        current_time = time.time()
        self._prune(current_time)

        # Drop timestamps that left the window
        recent = [
            t for t in self.request_times.get(client_id, [])
            if current_time - t < self.window_seconds
        ]

        if len(recent) >= self.requests_per_window:
            retry_after = max(1, int(self.window_seconds - (current_time - recent[0])) + 1)
            self.request_times[client_id] = recent
            logger.warning(f"Rate limit exceeded for {client_id} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "detail": "Too many booking attempts. Please try again shortly.",
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        recent.append(current_time)
        self.request_times[client_id] = recent

        return await call_next(request)
