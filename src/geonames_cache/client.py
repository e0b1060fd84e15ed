"""HTTP client for the two GeoNames web service calls the cache needs."""

import logging
from typing import Any, Optional

from .config import GEONAMES_API_URL, GEONAMES_USERNAME
from .errors import GeoNamesApiError

logger = logging.getLogger(__name__)

_TIMEOUT = 30  # seconds; GeoNames answers single lookups quickly


def _get_httpx():
    """Lazy import httpx, raising a clear error if not installed."""
    try:
        import httpx
        return httpx
    except ImportError:
        raise ImportError(
            "httpx is required for GeoNamesClient. "
            "Install it with: pip install geonames-cache"
        )


class GeoNamesClient:
    """Client for the GeoNames JSON web service."""

    def __init__(self, username: Optional[str] = None, base_url: str = GEONAMES_API_URL):
        self.username = username or GEONAMES_USERNAME
        self.base_url = base_url.rstrip("/")
        self._httpx = _get_httpx()
        if self.username == "demo":
            logger.warning(
                "Using demo GeoNames username. Set GEONAMES_USERNAME for production use."
            )

    def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET an endpoint and return its JSON body, raising on any failure."""
        try:
            resp = self._httpx.get(
                f"{self.base_url}/{endpoint}",
                params={**params, "username": self.username},
                timeout=_TIMEOUT,
            )
            resp.raise_for_status()
            data = resp.json()
        except self._httpx.HTTPError as e:
            raise GeoNamesApiError(f"GeoNames request to {endpoint} failed: {e}") from e

        # Errors come back as {"status": {"message": ..., "value": ...}}
        if isinstance(data, dict) and "status" in data:
            status = data["status"]
            raise GeoNamesApiError(
                f"GeoNames error from {endpoint}: {status.get('message', 'Unknown error')}",
                status=status.get("value"),
            )
        return data

    def get(self, geoname_id: int, style: str = "FULL") -> dict[str, Any]:
        """Fetch one feature by geoname id."""
        logger.debug(f"Fetching geoname {geoname_id} (style={style})")
        data = self._request("getJSON", {"geonameId": geoname_id, "style": style})
        if not data.get("geonameId"):
            raise GeoNamesApiError(f"GeoNames returned no feature for {geoname_id}")
        return data

    def country_info(self, country_code: str) -> dict[str, Any]:
        """Fetch the country info record for an ISO2 code."""
        logger.debug(f"Fetching country info for {country_code}")
        data = self._request("countryInfoJSON", {"country": country_code})
        entries = data.get("geonames") or []
        if not entries:
            raise GeoNamesApiError(f"GeoNames returned no country info for {country_code}")
        return entries[0]
