"""Forward geocoding client for the location search box.

Talks to OpenStreetMap Nominatim (default) or the Kakao Local keyword search
and normalizes either response shape into CandidateLocation records. Failures
are raised as SearchFailure; callers treat them as "zero candidates".
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import threading
import time
from typing import Any, Iterable, List, Optional

import requests

from domain.models import CandidateLocation, KakaoPlace, NominatimPlace, RawGeoResult
from settings import settings

NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org")
logger = logging.getLogger(__name__)
_session = requests.Session()
_last_request_ts: float = 0.0
_lock = threading.Lock()
# One process-wide slot: Nominatim allows ~1 request/s per client, so lookups
# from every search session and route queue behind the same timestamp.
_MIN_INTERVAL_SEC = float(os.getenv("NOMINATIM_MIN_INTERVAL", "1.0"))
_logged_ua = False
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT")
NOMINATIM_REFERER = os.getenv("NOMINATIM_REFERER")

FALLBACK_UA = "map-search/0.1 (contact: example@example.com)"
if NOMINATIM_USER_AGENT is None:
    logger.warning(
        "NOMINATIM_USER_AGENT not set in environment; using fallback UA. "
        "This may violate Nominatim usage policy."
    )


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)


_ua_value = NOMINATIM_USER_AGENT or FALLBACK_UA
NOMINATIM_HEADERS = {
    "User-Agent": _ua_value,
}
if NOMINATIM_REFERER:
    NOMINATIM_HEADERS["Referer"] = NOMINATIM_REFERER

# Keys under which providers nest the result array when they return an object.
_RESULT_LIST_KEYS = ("documents", "results", "features")

SUPPORTED_PROVIDERS = ("nominatim", "kakao")


class SearchFailure(Exception):
    """A geocode call produced no usable answer."""


class TransportFailure(SearchFailure):
    """Network, status or parse error talking to the geocoding provider."""


class EmptyQuery(ValueError):
    """Raised when search() is called with blank input; no request is made."""


def _throttled_get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    """Perform a GET request with a simple global rate limit."""
    global _last_request_ts
    with _lock:
        now = time.time()
        delta = now - _last_request_ts
        if delta < _MIN_INTERVAL_SEC:
            time.sleep(_MIN_INTERVAL_SEC - delta)
        _last_request_ts = time.time()
    return _session.get(url, params=params, headers=headers, timeout=timeout)


def extract_result_list(data: Any) -> List[dict]:
    """Return the list of raw records from an array or an object wrapping one."""
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        for key in _RESULT_LIST_KEYS:
            items = data.get(key)
            if isinstance(items, list):
                return [item for item in items if isinstance(item, dict)]
    raise TransportFailure(f"Unexpected geocoder payload of type {type(data).__name__}")


def parse_raw_result(provider: str, item: dict) -> RawGeoResult:
    if provider == "kakao":
        return KakaoPlace.from_dict(item)
    return NominatimPlace.from_dict(item)


def normalize_results(provider: str, items: Iterable[dict], limit: int) -> List[CandidateLocation]:
    """Normalize raw provider records, keeping provider rank order."""
    candidates: List[CandidateLocation] = []
    for item in items:
        candidate = parse_raw_result(provider, item).to_candidate()
        if candidate is None:
            logger.debug("Skipping %s result without usable coordinates: %r", provider, item)
            continue
        candidates.append(candidate)
        if len(candidates) >= limit:
            break
    return candidates


class GeocodeClient:
    def __init__(
        self,
        provider: str = "nominatim",
        base_url: Optional[str] = None,
        limit: int = 5,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
    ):
        provider = provider.lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported geocoding provider: {provider}")
        self.provider = provider
        if provider == "kakao":
            base = base_url or settings.KAKAO_BASE_URL
            self.api_key = api_key if api_key is not None else settings.KAKAO_REST_API_KEY
        else:
            base = base_url or NOMINATIM_BASE_URL
            self.api_key = api_key
        if base.endswith("/search"):
            base = base.rsplit("/", 1)[0]
        self.base_url = base.rstrip("/")
        self.limit = limit
        self.timeout = timeout if timeout is not None else settings.GEOCODER_TIMEOUT
        self.logger = logging.getLogger(__name__)

    def _request(self, query: str, limit: int) -> requests.Response:
        global _logged_ua
        if self.provider == "kakao":
            if not self.api_key:
                raise TransportFailure("KAKAO_REST_API_KEY is not configured")
            return _session.get(
                f"{self.base_url}/v2/local/search/keyword.json",
                params={"query": query, "size": str(limit)},
                headers={"Authorization": f"KakaoAK {self.api_key}"},
                timeout=self.timeout,
            )

        if not _logged_ua:
            self.logger.debug("Nominatim User-Agent: %s", _redact_email(_ua_value))
            _logged_ua = True
        params = {
            "format": "json",
            "q": query,
            "limit": str(limit),
            "addressdetails": "1",
        }
        return _throttled_get(
            f"{self.base_url}/search",
            params=params,
            headers=NOMINATIM_HEADERS,
            timeout=self.timeout,
        )

    def search(self, query: str, limit: Optional[int] = None) -> List[CandidateLocation]:
        """Geocode a free-text query into ranked candidates.

        Raises EmptyQuery for blank input and TransportFailure when the
        provider cannot be reached or answers with something unparseable.
        Performs exactly one request; there are no retries. `limit` overrides
        the client default for this call only.
        """
        text = (query or "").strip()
        if not text:
            raise EmptyQuery("query must not be blank")
        limit = self.limit if limit is None else limit

        try:
            resp = self._request(text, limit)
        except requests.RequestException as exc:
            raise TransportFailure(f"{self.provider} request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise TransportFailure(f"{self.provider} responded with HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportFailure(f"{self.provider} returned invalid JSON: {exc}") from exc

        results = normalize_results(self.provider, extract_result_list(data), limit)
        self.logger.debug(
            "GeocodeClient.search: provider=%s query=%r got %d results",
            self.provider,
            text,
            len(results),
        )
        return results

    async def asearch(self, query: str, limit: Optional[int] = None) -> List[CandidateLocation]:
        """Run search() on a worker thread so the event loop keeps running."""
        return await asyncio.to_thread(self.search, query, limit)


_default_geocode_client: Optional[GeocodeClient] = None


def get_default_geocode_client() -> GeocodeClient:
    global _default_geocode_client
    if _default_geocode_client is None:
        _default_geocode_client = GeocodeClient(
            provider=settings.GEOCODER_PROVIDER,
            limit=settings.GEOCODER_RESULT_LIMIT,
        )
    return _default_geocode_client
