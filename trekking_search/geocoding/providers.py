"""Geocoding providers restricted to Chile.

Both providers go through geopy with the aiohttp adapter. The shared
:meth:`GeocodingProvider.geocode` takes care of the Chile suffix, the bounds
check on every candidate and the mapping of geopy errors to HTTP errors.
"""

import logging
from typing import List, Optional

from geopy.adapters import AioHTTPAdapter
from geopy.exc import (
    GeocoderAuthenticationFailure,
    GeocoderInsufficientPrivileges,
    GeocoderQueryError,
    GeocoderQuotaExceeded,
    GeopyError,
)
from geopy.geocoders import GoogleV3, Nominatim

from trekking_search.core.config import settings
from trekking_search.core.errors import (
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    UpstreamAuthError,
    UpstreamError,
)
from trekking_search.models import GeocodingResult

logger = logging.getLogger(__name__)


def with_country(place_name: str) -> str:
    if "chile" in place_name.lower():
        return place_name
    return f"{place_name}, Chile"


def chile_box() -> list:
    """South-west and north-east corners as (lat, lon) pairs."""
    return [
        (settings.CHILE_MIN_LAT, settings.CHILE_MIN_LON),
        (settings.CHILE_MAX_LAT, settings.CHILE_MAX_LON),
    ]


class GeocodingProvider:
    name = "base"

    def __init__(self, timeout: int = None):
        self.timeout = timeout or settings.GEOCODING_TIMEOUT

    def is_enabled(self) -> bool:
        raise NotImplementedError

    def _geocoder(self):
        raise NotImplementedError

    async def _lookup(self, geocoder, query: str) -> Optional[List]:
        raise NotImplementedError

    async def geocode(self, place_name: str) -> GeocodingResult:
        if not self.is_enabled():
            raise ServiceUnavailableError(f"Geocoding provider {self.name} is not configured")

        query = with_country(place_name)
        logger.debug(f"[{self.name}] Geocoding: {query}")

        try:
            async with self._geocoder() as geocoder:
                locations = await self._lookup(geocoder, query)
        except GeocoderQuotaExceeded as e:
            raise RateLimitedError(f"{self.name} rate limit reached: {e}") from e
        except (GeocoderAuthenticationFailure, GeocoderInsufficientPrivileges) as e:
            raise UpstreamAuthError(f"{self.name} rejected the credentials: {e}") from e
        except GeocoderQueryError as e:
            if "api key" in str(e).lower() or "denied" in str(e).lower():
                raise UpstreamAuthError(f"{self.name} rejected the credentials: {e}") from e
            raise UpstreamError(f"{self.name} could not geocode '{place_name}': {e}") from e
        except GeopyError as e:
            logger.error(f"[{self.name}] Error geocoding '{place_name}': {e!r}")
            raise UpstreamError(f"{self.name} could not geocode '{place_name}'") from e

        # Providers may still hand back neighbours across the border
        in_chile = [
            loc for loc in locations or [] if settings.in_chile(loc.latitude, loc.longitude)
        ]
        if not in_chile:
            logger.warning(f"[{self.name}] No results in Chile for: {place_name}")
            raise NotFoundError(f'Place "{place_name}" was not found in Chile')

        best = in_chile[0]
        place_id = (best.raw or {}).get("place_id")
        logger.debug(f"[{self.name}] {place_name} -> ({best.latitude}, {best.longitude})")

        return GeocodingResult(
            lat=best.latitude,
            lon=best.longitude,
            formatted_address=best.address or place_name,
            place_id=str(place_id) if place_id is not None else None,
            provider=self.name,
        )


class NominatimProvider(GeocodingProvider):
    """Free OpenStreetMap geocoder. Requires an identifying User-Agent."""

    name = "nominatim"

    def __init__(self, enabled: bool = None, user_agent: str = None, domain: str = None, **kwargs):
        super().__init__(**kwargs)
        self.enabled = settings.NOMINATIM_ENABLED if enabled is None else enabled
        self.user_agent = user_agent or settings.NOMINATIM_USER_AGENT
        self.domain = domain or settings.NOMINATIM_DOMAIN

    def is_enabled(self) -> bool:
        return self.enabled

    def _geocoder(self):
        return Nominatim(
            user_agent=self.user_agent,
            domain=self.domain,
            timeout=self.timeout,
            adapter_factory=AioHTTPAdapter,
        )

    async def _lookup(self, geocoder, query: str):
        return await geocoder.geocode(
            query,
            exactly_one=False,
            limit=settings.GEOCODING_CANDIDATES,
            country_codes="cl",
            viewbox=chile_box(),
            bounded=True,
        )


class GoogleMapsProvider(GeocodingProvider):
    name = "google_maps"

    def __init__(self, api_key: str = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key

    def is_enabled(self) -> bool:
        return bool(self.api_key)

    def _geocoder(self):
        return GoogleV3(api_key=self.api_key, timeout=self.timeout, adapter_factory=AioHTTPAdapter)

    async def _lookup(self, geocoder, query: str):
        return await geocoder.geocode(
            query,
            exactly_one=False,
            region="cl",
            bounds=chile_box(),
        )
