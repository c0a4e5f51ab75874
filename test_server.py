#!/usr/bin/env python3
"""
Tests for the POST /api/detect-cloud endpoint.
"""

import asyncio
import os
import sys
from unittest import mock

from aiohttp import test_utils

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from cloud_header_detector.detector import CloudProviderDetector
from cloud_header_detector.rules import FETCH_ERROR
from cloud_header_detector import server
from cloud_header_detector.server import create_app
from test_detector import FakeFetcher


def call(fetcher, method="POST", path="/api/detect-cloud", **kwargs):
    """Send one request to the app and return (status, json body)."""

    async def run():
        app = create_app(CloudProviderDetector(fetcher=fetcher))
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            response = await client.request(method, path, **kwargs)
            return response.status, await response.json()

    return asyncio.run(run())


def test_detect_success():
    fetcher = FakeFetcher({"x-amz-request-id": "abc"})
    status, body = call(fetcher, json={"url": "example.com"})
    assert status == 200
    assert body == {
        "provider": "AWS",
        "confidence": "high",
        "signals": ["AWS CloudFront headers detected"],
    }
    assert fetcher.calls == [("HEAD", "https://example.com")]


def test_missing_url():
    fetcher = FakeFetcher()
    for payload in [{}, {"url": ""}, {"url": "   "}, {"url": None}, ["example.com"]]:
        status, body = call(fetcher, json=payload)
        assert status == 400
        assert body == {"error": "URL is required"}
    assert fetcher.calls == []


def test_non_string_url():
    status, body = call(FakeFetcher(), json={"url": 42})
    assert status == 400
    assert body == {"error": "URL must be a string"}


def test_malformed_body():
    status, body = call(
        FakeFetcher(), data="{not json", headers={"Content-Type": "application/json"}
    )
    assert status == 500
    assert body == {"error": "Failed to detect cloud provider"}


def test_probe_failure_is_not_an_http_error():
    status, body = call(FakeFetcher(header_error=OSError("dns")), json={"url": "nowhere.invalid"})
    assert status == 200
    assert body == {"provider": "Other", "confidence": "low", "signals": [FETCH_ERROR]}


def test_unexpected_detector_error():
    class BrokenDetector(CloudProviderDetector):
        async def detect(self, url):
            raise RuntimeError("boom")

    async def run():
        app = create_app(BrokenDetector(fetcher=FakeFetcher()))
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            response = await client.post("/api/detect-cloud", json={"url": "a.com"})
            return response.status, await response.json()

    status, body = asyncio.run(run())
    assert status == 500
    assert body == {"error": "Failed to detect cloud provider"}


def test_health():
    status, body = call(FakeFetcher(), method="GET", path="/health")
    assert status == 200
    assert body == {"status": "ok"}


def test_client_disconnect_cancels_detection():
    """Dropping the request aborts the in-flight header fetch."""

    class HangingFetcher(FakeFetcher):
        async def fetch_headers(self, url):
            self.started.set()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                self.cancelled.set()
                raise

    async def run():
        fetcher = HangingFetcher()
        fetcher.started = asyncio.Event()
        fetcher.cancelled = asyncio.Event()
        app = create_app(CloudProviderDetector(fetcher=fetcher))
        app_server = test_utils.TestServer(app, handler_cancellation=True)
        async with test_utils.TestClient(app_server) as client:
            request = asyncio.ensure_future(
                client.post("/api/detect-cloud", json={"url": "slow.example"})
            )
            await asyncio.wait_for(fetcher.started.wait(), 5)
            request.cancel()
            try:
                await request
            except asyncio.CancelledError:
                pass
            await asyncio.wait_for(fetcher.cancelled.wait(), 5)
        return fetcher.cancelled.is_set()

    assert asyncio.run(run())


def test_run_server_enables_handler_cancellation():
    with mock.patch.object(server.web, "run_app") as run_app:
        server.run_server(host="127.0.0.1", port=9999)

    kwargs = run_app.call_args.kwargs
    assert kwargs["handler_cancellation"] is True
    assert (kwargs["host"], kwargs["port"]) == ("127.0.0.1", 9999)


if __name__ == "__main__":
    for name, func in list(globals().items()):
        if name.startswith("test_") and callable(func):
            func()
            print(f"✅ {name}")
