import asyncio

from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

import blobsync.middleware.rate_limit as rate_limit_module
from blobsync.main import create_app
from blobsync.middleware import RateLimit
from blobsync.shared import Config


def make_client(store, cache, requests_per_second=3, timeout_period=10):
    config = Config.model_validate(
        {
            "network": {
                "rate_limit": {
                    "requests_per_second": requests_per_second,
                    "timeout_period": timeout_period,
                }
            }
        }
    )
    return TestClient(create_app(config, store=store, cache=cache))


def test_rate_limit(store, cache):
    """Sending many requests quickly gets the client rate limited."""
    client = make_client(store, cache)

    responses = [client.get("/") for _ in range(20)]

    assert responses[0].status_code == 200
    limited = [r for r in responses if r.status_code == 429]
    assert limited, "Expected at least one rate-limited (429) response"
    assert limited[0].json() == {"action": "error", "reason": "Too many requests."}


def test_timeout_keeps_rejecting(store, cache):
    client = make_client(store, cache, requests_per_second=1, timeout_period=60)

    statuses = [client.get("/").status_code for _ in range(5)]

    # Once limited, every later request inside the timeout period is rejected
    first_limited = statuses.index(429)
    assert all(status == 429 for status in statuses[first_limited:])


def test_preflight_not_limited(store, cache):
    client = make_client(store, cache, requests_per_second=1)
    headers = {
        "Origin": "https://example.com",
        "Access-Control-Request-Method": "POST",
    }

    statuses = [client.options("/update", headers=headers).status_code for _ in range(10)]

    assert 429 not in statuses


def make_request(host):
    return Request(
        {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "root_path": "",
            "path": "/",
            "query_string": b"",
            "headers": [],
            "client": (host, 50000),
        }
    )


async def ok(request):
    return Response("ok")


def test_idle_hosts_are_forgotten(clock, monkeypatch):
    monkeypatch.setattr(rate_limit_module, "monotonic", clock)
    limiter = RateLimit(None, timeout_period_s=10, max_per_second=2)

    async def run():
        for n in range(50):
            await limiter.dispatch(make_request(f"10.0.0.{n}"), ok)
        assert limiter.tracked_hosts == 50

        clock.advance(2)
        response = await limiter.dispatch(make_request("10.0.1.1"), ok)
        assert response.status_code == 200
        assert limiter.tracked_hosts == 1

    asyncio.run(run())


def test_expired_timeouts_are_forgotten(clock, monkeypatch):
    monkeypatch.setattr(rate_limit_module, "monotonic", clock)
    limiter = RateLimit(None, timeout_period_s=10, max_per_second=1)

    async def run():
        statuses = [
            (await limiter.dispatch(make_request("10.0.0.1"), ok)).status_code
            for _ in range(3)
        ]
        assert 429 in statuses
        assert limiter.tracked_hosts == 1

        clock.advance(11)
        await limiter.dispatch(make_request("10.0.0.2"), ok)
        assert limiter.tracked_hosts == 1

        # the released host starts over with a fresh window
        response = await limiter.dispatch(make_request("10.0.0.1"), ok)
        assert response.status_code == 200

    asyncio.run(run())
