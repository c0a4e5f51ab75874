#!/usr/bin/env python3
"""
Cloud Provider Detection - header signature version

Classifies which public cloud provider (AWS, Azure, GCP, Oracle, Alibaba
or Other) serves a URL by looking at HTTP response metadata:

- A HEAD probe whose response headers go through an ordered rule battery
- A GET probe, only when no header rule fired, whose body is searched
  for provider CDN and API domains

Any failure while probing yields a low confidence "Other" verdict instead
of an exception, so callers never need a separate error branch.
"""

import inspect
from typing import Dict, List, Optional

from . import settings
from .fetchers import AiohttpFetcher
from .rules import (
    error_verdict,
    evaluate_body,
    evaluate_headers,
    finalize,
    new_verdict,
    normalize_url,
)


async def _resolve(value):
    # Fetchers may be synchronous (requests) or asynchronous (aiohttp)
    if inspect.isawaitable(value):
        return await value
    return value


class CloudProviderDetector:
    """
    Header based Cloud Provider Detection Tool

    Holds no per-call state: the same instance can serve concurrent
    ``detect`` calls.
    """

    def __init__(self, fetcher=None, timeout: Optional[float] = None):
        """Initialize the detector with an injectable probe fetcher."""
        if fetcher is None:
            fetcher = AiohttpFetcher(
                timeout=timeout if timeout is not None else settings.PROBE_TIMEOUT
            )
        self.fetcher = fetcher

    async def detect(self, url: str) -> Dict[str, object]:
        """Classify the provider hosting ``url``."""
        verdict = new_verdict()

        try:
            url = normalize_url(url)
            headers = await _resolve(self.fetcher.fetch_headers(url))
            evaluate_headers(headers, verdict)

            # Body probe is a fallback, skipped once any header rule fired
            if not verdict["signals"]:
                body = await _resolve(self.fetcher.fetch_body(url))
                evaluate_body(body, verdict)
        except Exception as e:
            print(f"Error detecting cloud provider for {url}: {e}")
            return error_verdict()

        return finalize(verdict)

    async def detect_many(self, urls: List[str]) -> List[Dict[str, object]]:
        """Classify several URLs one after another, keeping input order."""
        results = []
        for url in urls:
            results.append(await self.detect(url))
        return results
