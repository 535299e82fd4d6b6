import json, random, threading, time
from flask import Response, request
from common.utils import client_ip

class FixedWindowLimiter:
    """Per-client request log; at most max_requests within any window_seconds."""

    def __init__(self, window_seconds: int = 60, max_requests: int = 100,
                 prune_probability: float = 0.01, clock=time.time):
        self.window = window_seconds
        self.max_requests = max_requests
        self.prune_probability = prune_probability
        self.clock = clock
        self._requests = {}
        self._lock = threading.Lock()

    def allow(self, client: str) -> bool:
        now = self.clock()
        with self._lock:
            recent = [t for t in self._requests.get(client, []) if now - t < self.window]
            if len(recent) >= self.max_requests:
                self._requests[client] = recent
                return False
            recent.append(now)
            self._requests[client] = recent
            if random.random() < self.prune_probability:
                self._prune(now)
            return True

    def _prune(self, now: float):
        cutoff = now - 5 * self.window
        for key in list(self._requests):
            kept = [t for t in self._requests[key] if t > cutoff]
            if kept:
                self._requests[key] = kept
            else:
                del self._requests[key]

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._requests)

    @property
    def retry_after(self) -> int:
        return int(self.window)


def rate_limit(app, limiter: FixedWindowLimiter, prefix: str = "/api"):
    @app.before_request
    def _check():
        if not request.path.startswith(prefix):
            return None
        if limiter.allow(client_ip()):
            return None
        body = {"success": False,
                "error": "Too many requests. Please try again later.",
                "retryAfter": limiter.retry_after}
        return Response(json.dumps(body), status=429, mimetype="application/json",
                        headers={"Retry-After": str(limiter.retry_after)})
