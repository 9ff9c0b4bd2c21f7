from collections import deque
from time import monotonic

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from blobsync.models.requests import ErrorResponse
from blobsync.shared import Config, Logger, load_config

logger = Logger(__name__).get_logger()
config: Config = load_config()
config_rate_limit = config.network.rate_limit


class RateLimit(BaseHTTPMiddleware):
    """Rate Limit middleware for FastApi endpoints
    Based loosely on sliding window rate limiting.
    Compares against the client IP.
    """

    def __init__(
        self,
        app,
        dispatch=None,
        timeout_period_s=config_rate_limit.timeout_period,
        max_per_second=config_rate_limit.requests_per_second,
    ):
        super().__init__(app, dispatch)

        # Params
        self.__max_per_second = max_per_second
        self.__timeout_period_s = timeout_period_s

        # Checks
        self.__bucket: dict[str, deque[float]] = {}
        self.__timeout_club: dict[str, float] = {}

        # Time
        self.__now = monotonic()
        self.__last_prune = self.__now

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        # Skip rate limiting for OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        host = request.client.host if request.client else "unknown"
        try:
            self.__now = monotonic()
            self.__prune()
            self.__check(host)
        except HTTPException as e:
            logger.warning("Rate limited %s on %s", host, request.url.path)
            return JSONResponse(
                status_code=e.status_code,
                content=ErrorResponse(reason=e.detail).model_dump(),
            )

        return await call_next(request)

    def __check(self, host: str):
        # a host in timeout is rejected until the period has passed;
        # otherwise record the hit, drop hits older than one second and
        # put the host in timeout once the window holds too many
        blocked_at = self.__timeout_club.get(host)
        if blocked_at is not None:
            if self.__now - blocked_at <= self.__timeout_period_s:
                raise HTTPException(status_code=429, detail="Too many requests.")
            del self.__timeout_club[host]

        window = self.__bucket.setdefault(host, deque())
        window.append(self.__now)

        while self.__now - window[0] > 1:
            window.popleft()

        if len(window) > self.__max_per_second:
            self.__timeout_club[host] = self.__now
            del self.__bucket[host]
            raise HTTPException(status_code=429, detail="Too many requests.")

    def __prune(self):
        # at most once per second, forget hosts whose window has emptied
        # and hosts whose timeout has run out
        if self.__now - self.__last_prune < 1:
            return
        self.__last_prune = self.__now

        idle = [h for h, window in self.__bucket.items() if self.__now - window[-1] > 1]
        for host in idle:
            del self.__bucket[host]

        released = [
            h
            for h, blocked_at in self.__timeout_club.items()
            if self.__now - blocked_at > self.__timeout_period_s
        ]
        for host in released:
            del self.__timeout_club[host]

    @property
    def tracked_hosts(self) -> int:
        return len(self.__bucket) + len(self.__timeout_club)
