"""Turn raw Overpass elements into :class:`Place` records."""

import logging
import re
from typing import Iterable, List, Optional

from trekking_search.models import Coordinates, Difficulty, Place, PlaceCategory

logger = logging.getLogger(__name__)

OSM_SOURCE = "OpenStreetMap"
OSM_BASE_URL = "https://www.openstreetmap.org"
UNNAMED = "Sin nombre"

# Leading number, like "12.5 km" or "3h"
_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))")

SAC_SCALE = {
    "t1": Difficulty.EASY,
    "hiking": Difficulty.EASY,
    "t2": Difficulty.MODERATE,
    "t3": Difficulty.MODERATE,
    "mountain_hiking": Difficulty.MODERATE,
    "demanding_mountain_hiking": Difficulty.MODERATE,
    "t4": Difficulty.HARD,
    "t5": Difficulty.HARD,
    "alpine_hiking": Difficulty.HARD,
    "demanding_alpine_hiking": Difficulty.HARD,
    "t6": Difficulty.EXPERT,
    "difficult_alpine_hiking": Difficulty.EXPERT,
}

# Checked in order; the first synonym found in the tag wins
DIFFICULTY_SYNONYMS = [
    (Difficulty.EASY, ("easy", "fácil", "facil")),
    (Difficulty.MODERATE, ("moderate", "moderado", "moderada", "media", "medio")),
    (Difficulty.HARD, ("hard", "difícil", "dificil")),
    (Difficulty.EXPERT, ("expert", "experto", "experta")),
]


def parse_number(value) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def resolve_name(tags: dict) -> str:
    return tags.get("name") or tags.get("name:es") or UNNAMED


def resolve_coordinates(element: dict) -> Optional[Coordinates]:
    """Direct lat/lon first, then the ``out center`` field, then the geometry mean."""
    if element.get("lat") is not None and element.get("lon") is not None:
        return Coordinates(lat=element["lat"], lon=element["lon"])

    center = element.get("center") or {}
    if center.get("lat") is not None and center.get("lon") is not None:
        return Coordinates(lat=center["lat"], lon=center["lon"])

    geometry = [
        point
        for point in element.get("geometry") or []
        if point and point.get("lat") is not None and point.get("lon") is not None
    ]
    if geometry:
        return Coordinates(
            lat=sum(p["lat"] for p in geometry) / len(geometry),
            lon=sum(p["lon"] for p in geometry) / len(geometry),
        )

    return None


def classify(tags: dict) -> PlaceCategory:
    if tags.get("route") == "hiking":
        return PlaceCategory.HIKING
    if tags.get("leisure") == "nature_reserve":
        return PlaceCategory.NATURE_RESERVE
    if tags.get("natural") == "peak":
        return PlaceCategory.PEAK
    if tags.get("tourism") == "attraction":
        return PlaceCategory.ATTRACTION
    if tags.get("highway") in ("path", "footway"):
        return PlaceCategory.TRAIL
    return PlaceCategory.PLACE


def derive_difficulty(tags: dict) -> Optional[Difficulty]:
    sac_scale = (tags.get("sac_scale") or "").strip().lower()
    if sac_scale in SAC_SCALE:
        return SAC_SCALE[sac_scale]

    free_text = (tags.get("difficulty") or "").strip().lower()
    if free_text:
        for difficulty, synonyms in DIFFICULTY_SYNONYMS:
            if any(word in free_text for word in synonyms):
                return difficulty

    return None


def normalize_element(element: dict) -> Optional[Place]:
    coordinates = resolve_coordinates(element)
    if coordinates is None:
        logger.debug(f"Dropping {element.get('type')}/{element.get('id')}: no coordinates")
        return None

    tags = element.get("tags") or {}
    osm_type = element.get("type", "node")
    osm_id = element.get("id")
    description = tags.get("description") or tags.get("description:es") or tags.get("note")

    return Place(
        id=f"{osm_type}_{osm_id}",
        name=resolve_name(tags),
        category=classify(tags),
        coordinates=coordinates,
        description=description or None,
        difficulty=derive_difficulty(tags),
        distance=parse_number(tags.get("distance")),
        duration=parse_number(tags.get("duration")),
        elevation=parse_number(tags.get("ele")),
        source=OSM_SOURCE,
        osm_url=f"{OSM_BASE_URL}/{osm_type}/{osm_id}",
    )


def normalize_elements(
    elements: Iterable[dict],
    difficulty: Optional[Difficulty] = None,
    limit: Optional[int] = None,
) -> List[Place]:
    places = [p for p in (normalize_element(e) for e in elements) if p is not None]

    if difficulty is not None:
        places = [p for p in places if p.difficulty == difficulty]

    if limit is not None:
        places = places[:limit]
    return places
