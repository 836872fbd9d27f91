"""
Guide2Umrah Backend: Rate Limiting Middleware
===============================================

What:  Per-IP sliding window rate limiter for the public API.
How:   Keeps the timestamps of each IP's requests inside the window in
       memory; a request beyond RATE_LIMIT_REQUESTS gets a 429.
Who:   Applied to every request via Starlette middleware. The public
       subscription form and the login endpoint are the main targets.
When:  First in the middleware chain, before any body is parsed.

Algorithm: Sliding Window Log
    1. Drop the IP's timestamps older than now - window
    2. Remaining count >= limit → 429 with Retry-After until the oldest expires
    3. Otherwise record now and pass the request on

    Time complexity:  O(k) per request, k = requests of that IP in the window
    Space complexity: O(n × k), n = IPs seen within the window

State is per process. With several uvicorn workers each worker counts
separately, so the effective limit is limit × workers.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from guide2umrah.config import settings
from guide2umrah.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Configuration (from settings):
        rate_limit_requests: Max requests per IP per window (default: 100)
        rate_limit_window:   Window length in seconds (default: 3600)

    Excluded paths:
        /health, /docs, /openapi.json, /redoc

    Response on rate limit:
        HTTP 429 with the usual error body (error, message, details) and a
        Retry-After header holding the seconds until the oldest request in
        the window expires.
    """

    # Probes and API docs are always reachable
    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    # Forget idle IPs every this many admitted requests
    CLEANUP_EVERY = 1000

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        # IP → timestamps of its admitted requests, oldest first
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's address; run uvicorn with
        # --proxy-headers so request.client reflects X-Forwarded-For
        client_ip = request.client.host if request.client else "unknown"

        now = time.time()
        window_start = now - settings.rate_limit_window

        # ── Slide the window ──────────────────────────────────────────────
        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        # ── Check the limit ───────────────────────────────────────────────
        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                settings.rate_limit_window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        # ── Record this request ───────────────────────────────────────────
        timestamps.append(now)

        self._seen += 1
        if self._seen % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """
        Remove IPs that have no request inside the current window.

        When:    Every CLEANUP_EVERY admitted requests.
        Effect:  The dict only holds IPs seen within the last window.
        """
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
