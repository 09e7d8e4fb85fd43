from typing import Optional, Tuple

import httpx
from loguru import logger

from hangout.core import config
from hangout.core.errors import BadRequestError

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def geocode_address(address: str, api_key: Optional[str] = None, timeout: float = 10) -> Tuple[float, float]:
    """Resolve a street address to (lat, lng) through the Google Geocoding API."""
    api_key = api_key or config.GOOGLE_PLACES_API_KEY
    if not api_key:
        raise BadRequestError("Geocoding not configured")

    try:
        resp = httpx.get(GEOCODE_URL, params={"address": address, "key": api_key}, timeout=timeout)
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Geocoding request failed: {e}")
        raise BadRequestError("Could not geocode address. Please check the address and try again.")

    results = data.get("results") or []
    if data.get("status") != "OK" or not results:
        logger.info(f"Geocoding returned {data.get('status')} for address={address!r}")
        raise BadRequestError("Could not geocode address. Please check the address and try again.")

    location = results[0]["geometry"]["location"]
    return float(location["lat"]), float(location["lng"])
