import logging
from typing import Optional

from trekking_search.core.errors import ServiceUnavailableError, TrekkingSearchError
from trekking_search.geocoding.providers import (
    GeocodingProvider,
    GoogleMapsProvider,
    NominatimProvider,
)
from trekking_search.models import GeocodingResult

logger = logging.getLogger(__name__)


class Geocoder:
    """Primary provider first, secondary only when the primary fails.

    When both fail, the caller sees the primary provider's error.
    """

    def __init__(
        self,
        primary: Optional[GeocodingProvider] = None,
        secondary: Optional[GeocodingProvider] = None,
    ):
        self.primary = primary if primary is not None else NominatimProvider()
        self.secondary = secondary if secondary is not None else GoogleMapsProvider()

    def is_available(self) -> bool:
        return self.primary.is_enabled() or self.secondary.is_enabled()

    async def geocode(self, place_name: str) -> GeocodingResult:
        if not self.is_available():
            raise ServiceUnavailableError(
                "Geocoding is not configured. Enable Nominatim or set GOOGLE_MAPS_API_KEY."
            )

        if not self.primary.is_enabled():
            return await self.secondary.geocode(place_name)

        try:
            return await self.primary.geocode(place_name)
        except TrekkingSearchError as primary_error:
            if not self.secondary.is_enabled():
                raise

            logger.warning(
                f"{self.primary.name} failed for '{place_name}' ({primary_error.detail}), "
                f"trying {self.secondary.name}"
            )
            try:
                return await self.secondary.geocode(place_name)
            except TrekkingSearchError as secondary_error:
                logger.warning(
                    f"{self.secondary.name} also failed for '{place_name}': {secondary_error.detail}"
                )
                raise primary_error


geocoder = Geocoder()
