"""
HTTP interface for the detector.

POST /api/detect-cloud with ``{"url": "..."}`` returns the verdict as
JSON. Probe failures are part of a normal 200 verdict; only a missing
URL (400) or a request that cannot be processed (500) produce errors.
"""

import json
from typing import Optional

from aiohttp import web

from . import settings
from .detector import CloudProviderDetector

DETECTOR_KEY = web.AppKey("detector", CloudProviderDetector)


async def detect_cloud(request: web.Request) -> web.Response:
    """Classify the URL posted in the JSON body."""
    try:
        payload = await request.json()
        url = payload.get("url") if isinstance(payload, dict) else None

        if url is not None and not isinstance(url, str):
            return web.json_response({"error": "URL must be a string"}, status=400)
        if not url or not url.strip():
            return web.json_response({"error": "URL is required"}, status=400)

        result = await request.app[DETECTOR_KEY].detect(url)
        return web.json_response(result)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        print(f"API error: malformed request body: {e}")
    except Exception as e:
        print(f"API error: {e}")
    return web.json_response({"error": "Failed to detect cloud provider"}, status=500)


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_app(detector: Optional[CloudProviderDetector] = None) -> web.Application:
    """Build the aiohttp application around a detector."""
    app = web.Application()
    app[DETECTOR_KEY] = detector or CloudProviderDetector()
    app.router.add_post(settings.DETECT_ENDPOINT, detect_cloud)
    app.router.add_get("/health", health)
    return app


def run_server(
    host: str = settings.SERVER_HOST,
    port: int = settings.SERVER_PORT,
    detector: Optional[CloudProviderDetector] = None,
):
    """Serve until interrupted; a client disconnect cancels its probe."""
    print(f"Serving cloud provider detection on http://{host}:{port}")
    web.run_app(
        create_app(detector),
        host=host,
        port=port,
        handler_cancellation=True,
        print=None,
    )
