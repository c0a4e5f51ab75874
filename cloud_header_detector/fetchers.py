"""
Probe transports used by the detector.

A fetcher performs the two probe kinds the detector needs: a HEAD
request whose headers are inspected, and a GET request whose decoded
body is searched. Both follow redirects to the final destination.
Errors are left to propagate; the detector decides what a failed probe
means.
"""

from typing import Optional

import aiohttp
import requests
from requests.structures import CaseInsensitiveDict

from . import settings


def merge_headers(raw_headers) -> CaseInsensitiveDict:
    """Collapse repeated header fields into one comma separated value."""
    merged = CaseInsensitiveDict()
    for name, value in raw_headers.items():
        if name in merged:
            merged[name] = f"{merged[name]}, {value}"
        else:
            merged[name] = value
    return merged


class AiohttpFetcher:
    """Asynchronous fetcher, one client session per probe."""

    def __init__(
        self,
        timeout: float = settings.PROBE_TIMEOUT,
        user_agent: str = settings.USER_AGENT,
    ):
        self.timeout = timeout
        self.user_agent = user_agent

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"User-Agent": self.user_agent},
        )

    async def fetch_headers(self, url: str) -> CaseInsensitiveDict:
        async with self._session() as session:
            async with session.head(url, allow_redirects=True) as response:
                return merge_headers(response.headers)

    async def fetch_body(self, url: str) -> str:
        async with self._session() as session:
            async with session.get(url, allow_redirects=True) as response:
                return await response.text(errors="replace")


class RequestsFetcher:
    """Blocking fetcher backed by a pooled requests session."""

    def __init__(
        self,
        timeout: float = settings.PROBE_TIMEOUT,
        user_agent: str = settings.USER_AGENT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def fetch_headers(self, url: str) -> CaseInsensitiveDict:
        response = self.session.head(url, timeout=self.timeout, allow_redirects=True)
        # requests already joins repeated fields
        return response.headers

    def fetch_body(self, url: str) -> str:
        response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        return response.text

    def close(self):
        self.session.close()
