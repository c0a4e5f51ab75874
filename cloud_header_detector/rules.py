"""
Cloud provider signatures and the rule batteries that match them.

Header rules run in a fixed order and all of them are evaluated: a later
match overwrites the provider and confidence written by an earlier one,
while every match leaves its signal in the verdict. Body rules are a
fallback for responses whose headers say nothing, and stop at the first
match.
"""

from typing import Dict, Iterable, Mapping, Optional
from urllib.parse import urlparse

from requests.structures import CaseInsensitiveDict

OTHER = "Other"
PROVIDERS = ("AWS", "Azure", "GCP", "Oracle", "Alibaba", OTHER)

CONFIDENCE_LEVELS = ("high", "medium", "low")
CONFIDENCE_RANK = {"high": 3, "medium": 2, "low": 1}

NO_SIGNALS = "No clear cloud provider signals detected"
FETCH_ERROR = "Error fetching URL - unable to detect"


def new_verdict() -> Dict:
    """Return a fresh, unclassified verdict."""
    return {"provider": OTHER, "confidence": "low", "signals": []}


def error_verdict() -> Dict:
    """Return the verdict used when a probe fails."""
    return {"provider": OTHER, "confidence": "low", "signals": [FETCH_ERROR]}


def confidence_rank(level: str) -> int:
    """Rank a confidence label, higher is more certain."""
    try:
        return CONFIDENCE_RANK[level]
    except KeyError:
        raise ValueError(f"Unknown confidence level: {level!r}") from None


def meets_confidence(verdict, minimum: str) -> bool:
    """True when the verdict is at least as confident as ``minimum``."""
    return confidence_rank(verdict["confidence"]) >= confidence_rank(minimum)


def normalize_url(url: str) -> str:
    """Strip the input and default to https:// when no scheme is given."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def domain_key(url: str) -> str:
    """Bare host name of a URL, used to spot the same site entered twice."""
    host = urlparse(normalize_url(url)).hostname or ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def as_header_map(headers: Mapping[str, str]) -> CaseInsensitiveDict:
    if isinstance(headers, CaseInsensitiveDict):
        return headers
    return CaseInsensitiveDict(headers or {})


class HeaderRule:
    """
    One entry of the header battery.

    ``present`` lists header names of which any one (with a non-empty
    value) triggers the rule; ``contains`` maps a header name to the
    substrings searched in its value. The two are OR-ed together.

    A rule without a provider only records its signal, and lowers the
    confidence to its own level while nothing has been classified yet.
    ``only_unclassified`` skips the rule once a provider has been set.
    """

    def __init__(
        self,
        signal: str,
        provider: Optional[str] = None,
        confidence: str = "high",
        present: Iterable[str] = (),
        contains: Optional[Dict[str, Iterable[str]]] = None,
        only_unclassified: bool = False,
    ):
        self.signal = signal
        self.provider = provider
        self.confidence = confidence
        self.present = tuple(present)
        self.contains = {
            name: tuple(needles) for name, needles in (contains or {}).items()
        }
        self.only_unclassified = only_unclassified

    def matches(self, headers: Mapping[str, str]) -> bool:
        if any(headers.get(name) for name in self.present):
            return True
        for name, needles in self.contains.items():
            value = headers.get(name) or ""
            if any(needle in value for needle in needles):
                return True
        return False

    def describe(self, headers: Mapping[str, str]) -> str:
        return self.signal.format(server=headers.get("server") or "")

    def apply(self, headers: Mapping[str, str], verdict: Dict) -> bool:
        """Update the verdict in place, returning True when the rule fired."""
        if self.only_unclassified and verdict["provider"] != OTHER:
            return False
        if not self.matches(headers):
            return False

        if self.provider is not None:
            verdict["provider"] = self.provider
            verdict["confidence"] = self.confidence
        elif verdict["provider"] == OTHER:
            verdict["confidence"] = self.confidence
        verdict["signals"].append(self.describe(headers))
        return True

    def __repr__(self) -> str:
        return f"HeaderRule({self.signal!r}, provider={self.provider!r})"


class BodyRule:
    """Substring match against the decoded response body."""

    def __init__(self, signal: str, provider: str, needles: Iterable[str]):
        self.signal = signal
        self.provider = provider
        self.confidence = "medium"
        self.needles = tuple(needles)

    def matches(self, body: str) -> bool:
        return any(needle in body for needle in self.needles)

    def __repr__(self) -> str:
        return f"BodyRule({self.signal!r}, provider={self.provider!r})"


HEADER_RULES = (
    HeaderRule(
        "AWS CloudFront headers detected",
        provider="AWS",
        present=[
            "x-amz-cf-id",
            "x-amz-request-id",
            "x-amzn-requestid",
            "x-amzn-trace-id",
        ],
    ),
    HeaderRule(
        "CloudFront in Via header",
        provider="AWS",
        contains={"via": ["CloudFront"]},
    ),
    HeaderRule(
        "Azure headers detected",
        provider="Azure",
        present=["x-azure-ref", "x-ms-request-id", "x-ms-version", "x-aspnet-version"],
    ),
    HeaderRule(
        "Google Cloud headers detected",
        provider="GCP",
        present=[
            "x-goog-generation",
            "x-goog-metageneration",
            "x-goog-stored-content-length",
            "x-guploader-uploadid",
        ],
    ),
    HeaderRule(
        "Google infrastructure detected",
        provider="GCP",
        contains={"via": ["google"], "server": ["gws"]},
    ),
    HeaderRule(
        "Oracle Cloud headers detected",
        provider="Oracle",
        present=["x-oracle-dms-ecid", "x-oracle-dms-rid"],
    ),
    HeaderRule(
        "Alibaba Cloud headers detected",
        provider="Alibaba",
        present=["x-oss-request-id", "x-oss-hash-crc64ecma", "eagleeye-traceid"],
    ),
    # Cloudflare fronts every provider, so it is evidence only
    HeaderRule(
        "Cloudflare CDN detected (underlying cloud may vary)",
        confidence="low",
        present=["cf-ray", "cf-cache-status"],
    ),
    HeaderRule(
        "Server header: {server}",
        provider="AWS",
        contains={"server": ["AmazonS3", "AmazonEC2"]},
    ),
    HeaderRule(
        "Server header suggests Azure: {server}",
        provider="Azure",
        confidence="medium",
        contains={"server": ["Microsoft", "IIS"]},
        only_unclassified=True,
    ),
)

BODY_RULES = (
    BodyRule("CloudFront domain in content", "AWS", ["cloudfront.net"]),
    BodyRule("Azure domain in content", "Azure", ["azureedge.net", "azure.com"]),
    BodyRule(
        "Google Cloud domain in content", "GCP", ["googleapis.com", "gstatic.com"]
    ),
)


def evaluate_headers(
    headers: Mapping[str, str], verdict: Optional[Dict] = None
) -> Dict:
    """Run every header rule in order against ``headers``."""
    if verdict is None:
        verdict = new_verdict()
    headers = as_header_map(headers)
    for rule in HEADER_RULES:
        rule.apply(headers, verdict)
    return verdict


def evaluate_body(body: str, verdict: Optional[Dict] = None) -> Dict:
    """Apply the first body rule whose needle occurs in ``body``."""
    if verdict is None:
        verdict = new_verdict()
    for rule in BODY_RULES:
        if rule.matches(body or ""):
            verdict["provider"] = rule.provider
            verdict["confidence"] = rule.confidence
            verdict["signals"].append(rule.signal)
            break
    return verdict


def finalize(verdict: Dict) -> Dict:
    if not verdict["signals"]:
        verdict["signals"].append(NO_SIGNALS)
    return verdict
