"""Optional device-location lookup for report submission.

A provider is any coroutine function returning ``(latitude, longitude)``.
Lookups are bounded by a timeout; any failure becomes
``GeolocationUnavailable`` so the caller can fall back to manual entry.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import config
from errors import GeolocationUnavailable

logger = logging.getLogger(__name__)

CoordinateProvider = Callable[[], Awaitable[tuple[float, float]]]

FALLBACK_MESSAGE = "Unable to get location. Please enter manually."


async def locate(provider: CoordinateProvider, timeout: float | None = None) -> tuple[float, float]:
    if timeout is None:
        timeout = config.GEOLOCATION_TIMEOUT_S
    try:
        lat, lon = await asyncio.wait_for(provider(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise GeolocationUnavailable(FALLBACK_MESSAGE, details={"reason": "timeout"}) from exc
    except Exception as exc:
        raise GeolocationUnavailable(FALLBACK_MESSAGE, details={"reason": str(exc)}) from exc
    return float(lat), float(lon)


def apply_coordinates(draft: dict, lat: float, lon: float) -> dict:
    """Fill coordinates (6 decimals) and a default location description."""
    lat, lon = round(lat, 6), round(lon, 6)
    filled = dict(draft)
    filled["latitude"] = lat
    filled["longitude"] = lon
    if not (filled.get("location_description") or "").strip():
        filled["location_description"] = f"{lat:.6f}, {lon:.6f}"
    return filled


def has_coordinates(draft: dict) -> bool:
    return draft.get("latitude") not in (None, "") or draft.get("longitude") not in (None, "")
