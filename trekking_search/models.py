from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from trekking_search.core.config import settings


class Difficulty(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    EXPERT = "expert"


class PlaceCategory(str, Enum):
    HIKING = "hiking"
    NATURE_RESERVE = "nature_reserve"
    PEAK = "peak"
    ATTRACTION = "attraction"
    TRAIL = "trail"
    PLACE = "place"


class SearchRequest(BaseModel):
    lat: Optional[float] = Field(None, ge=settings.CHILE_MIN_LAT, le=settings.CHILE_MAX_LAT)
    lon: Optional[float] = Field(None, ge=settings.CHILE_MIN_LON, le=settings.CHILE_MAX_LON)
    radius: float = Field(settings.DEFAULT_RADIUS_KM, ge=1, le=500)
    difficulty: Optional[Difficulty] = None
    name: Optional[str] = None
    limit: int = Field(settings.DEFAULT_LIMIT, ge=1, le=100)
    query: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


class Coordinates(BaseModel):
    lat: float
    lon: float


class Place(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    category: PlaceCategory
    coordinates: Coordinates
    description: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    distance: Optional[float] = None
    duration: Optional[float] = None
    elevation: Optional[float] = None
    source: str = "OpenStreetMap"
    osm_url: Optional[str] = Field(None, alias="osmUrl")


class SearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    places: List[Place]
    total: int
    limit: int
    ai_recommendation: Optional[str] = Field(None, alias="aiRecommendation")


class GeocodingResult(BaseModel):
    lat: float
    lon: float
    formatted_address: str
    place_id: Optional[str] = None
    provider: str


class AISearchParams(BaseModel):
    name: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    radius: Optional[float] = None
    difficulty: Optional[Difficulty] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def _known_difficulty(cls, value):
        # Models sometimes answer "easy|moderate" or a Spanish label
        if isinstance(value, str):
            value = value.strip().lower()
            if value in {d.value for d in Difficulty}:
                return value
        return None

    @field_validator("name", mode="before")
    @classmethod
    def _blank_name(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("lat", "lon", "radius", mode="before")
    @classmethod
    def _numeric(cls, value):
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @model_validator(mode="after")
    def _coordinates_in_chile(self):
        if self.lat is None or self.lon is None or not settings.in_chile(self.lat, self.lon):
            self.lat = None
            self.lon = None
        if self.radius is not None and not 1 <= self.radius <= 500:
            self.radius = None
        return self


class QueryInterpretation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reasoning: Optional[str] = None
    search_params: AISearchParams = Field(default_factory=AISearchParams, alias="searchParams")

    @field_validator("search_params", mode="before")
    @classmethod
    def _missing_params(cls, value):
        return value if isinstance(value, (dict, AISearchParams)) else {}
