from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from sqlalchemy.orm import Session

from hangout.core import config
from hangout.core.errors import UpstreamError
from hangout.services.presence_registry import PresenceRegistry

PLACES_NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PLACES_KEYWORD = "lounge|club|bar|arcade|amusement"
NEARBY_PLACES_LIMIT = 4


def _to_place(result: Dict[str, Any]) -> Dict[str, Any]:
    location = result["geometry"]["location"]
    return {
        "place_id": result["place_id"],
        "name": result.get("name"),
        "address": result.get("vicinity"),
        "rating": result.get("rating"),
        "types": result.get("types") or [],
        "location": {"lat": float(location["lat"]), "lng": float(location["lng"])},
        "open_now": (result.get("opening_hours") or {}).get("open_now"),
    }


def nearby_places(
    db: Session,
    lat: float,
    lng: float,
    api_key: Optional[str] = None,
    limit: int = NEARBY_PLACES_LIMIT,
    timeout: float = 10,
) -> List[Dict[str, Any]]:
    """
    Closest nightlife venues from Google Places (ranked by distance), each
    with the number of users currently checked in there.
    """
    api_key = api_key or config.GOOGLE_PLACES_API_KEY
    if not api_key:
        logger.error("GOOGLE_PLACES_API_KEY not configured")
        raise UpstreamError("Places API not configured")

    params = {
        "location": f"{lat},{lng}",
        "rankby": "distance",
        "keyword": PLACES_KEYWORD,
        "key": api_key,
    }
    try:
        resp = httpx.get(PLACES_NEARBY_URL, params=params, timeout=timeout)
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Places request failed: {e}")
        raise UpstreamError("Failed to fetch places")

    status = data.get("status")
    if status not in ("OK", "ZERO_RESULTS"):
        logger.error(f"Google Places API error: {status} {data.get('error_message', '')}")
        raise UpstreamError("Failed to fetch places")

    registry = PresenceRegistry(db)
    places = []
    for result in (data.get("results") or [])[:limit]:
        place = _to_place(result)
        place["user_count"] = registry.count_present(place["place_id"])
        places.append(place)

    logger.info(f"Found {len(places)} nearby places for location {lat}, {lng}")
    return places
