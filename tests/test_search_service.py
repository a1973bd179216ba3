import pytest
from unittest.mock import AsyncMock, MagicMock

from trekking_search.core.errors import GatewayTimeoutError, NotFoundError, UpstreamError
from trekking_search.models import (
    AISearchParams,
    Coordinates,
    Difficulty,
    GeocodingResult,
    Place,
    PlaceCategory,
    QueryInterpretation,
    SearchRequest,
)
from trekking_search.services.search import TrekkingSearchService, merge_interpretation

PEAK = Place(
    id="node_1",
    name="Cerro El Plomo",
    category=PlaceCategory.PEAK,
    coordinates=Coordinates(lat=-33.23, lon=-70.21),
)


def build_service(places=None, interpretation=None, parse_error=None, ai=True, geo_result=None, geo_error=None, geo=True):
    overpass = MagicMock()
    overpass.search = AsyncMock(return_value=[PEAK] if places is None else places)

    parser = MagicMock()
    parser.is_available.return_value = ai
    parser.parse = AsyncMock(return_value=interpretation, side_effect=parse_error)

    recommender = MagicMock()
    recommender.is_available.return_value = ai
    recommender.recommend = AsyncMock(return_value="Go early to El Plomo.")

    geocoder = MagicMock()
    geocoder.is_available.return_value = geo
    geocoder.geocode = AsyncMock(return_value=geo_result, side_effect=geo_error)

    return TrekkingSearchService(overpass, geocoder, parser, recommender)


def searched_with(service) -> SearchRequest:
    return service.overpass.search.call_args.args[0]


def interpretation(**params):
    return QueryInterpretation(reasoning="...", search_params=AISearchParams(**params))


def test_explicit_radius_beats_ai_radius():
    request = SearchRequest(query="near Santiago", radius=10)

    merged = merge_interpretation(request, interpretation(radius=80, name="Santiago"))

    assert merged.radius == 10
    assert merged.name == "Santiago"
    assert merged.query == "near Santiago"


def test_ai_radius_fills_a_defaulted_radius():
    merged = merge_interpretation(SearchRequest(query="q"), interpretation(radius=80))

    assert merged.radius == 80


@pytest.mark.asyncio
async def test_plain_search_skips_ai_and_geocoding():
    service = build_service()
    request = SearchRequest(lat=-33.4489, lon=-70.6693, radius=50)

    response = await service.search(request)

    assert response.total == 1
    assert response.limit == 20
    assert response.ai_recommendation is None
    service.parser.parse.assert_not_called()
    service.geocoder.geocode.assert_not_called()
    service.recommender.recommend.assert_not_called()


@pytest.mark.asyncio
async def test_full_pipeline_with_ai_and_geocoding():
    service = build_service(
        interpretation=interpretation(name="Cajón del Maipo", difficulty="hard", radius=25),
        geo_result=GeocodingResult(lat=-33.64, lon=-70.35, formatted_address="Cajón del Maipo", provider="nominatim"),
    )

    response = await service.search(SearchRequest(query="rutas difíciles en el Cajón del Maipo", limit=5))

    params = searched_with(service)
    assert params.name == "Cajón del Maipo"
    assert params.difficulty == Difficulty.HARD
    assert params.radius == 25
    assert params.limit == 5
    assert (params.lat, params.lon) == (-33.64, -70.35)
    service.geocoder.geocode.assert_awaited_once_with("Cajón del Maipo")
    service.recommender.recommend.assert_awaited_once_with([PEAK], "rutas difíciles en el Cajón del Maipo")
    assert response.ai_recommendation == "Go early to El Plomo."


@pytest.mark.asyncio
async def test_ai_failure_falls_back_to_explicit_request():
    service = build_service(parse_error=UpstreamError("bad json"))

    response = await service.search(SearchRequest(query="easy trails", difficulty="easy"))

    params = searched_with(service)
    assert params.difficulty == Difficulty.EASY
    assert params.name is None
    assert response.total == 1


@pytest.mark.asyncio
async def test_geocoding_failure_searches_without_coordinates():
    service = build_service(geo_error=NotFoundError("nope"))

    await service.search(SearchRequest(name="Torres del Paine"))

    params = searched_with(service)
    assert params.name == "Torres del Paine"
    assert params.lat is None and params.lon is None


@pytest.mark.asyncio
async def test_explicit_coordinates_skip_geocoding():
    service = build_service()

    await service.search(SearchRequest(name="El Morado", lat=-33.8, lon=-70.1))

    service.geocoder.geocode.assert_not_called()


@pytest.mark.asyncio
async def test_one_caller_coordinate_drops_inferred_coordinates():
    service = build_service(interpretation=interpretation(lat=-33.45, lon=-70.66))

    await service.search(SearchRequest(query="cerros", name="El Morado", lat=-33.8))

    params = searched_with(service)
    assert params.lat == -33.8
    assert params.lon is None
    service.geocoder.geocode.assert_not_called()


@pytest.mark.asyncio
async def test_no_recommendation_without_places():
    service = build_service(places=[], interpretation=interpretation())

    response = await service.search(SearchRequest(query="glaciers in the Atacama"))

    assert response.places == []
    assert response.ai_recommendation is None
    service.recommender.recommend.assert_not_called()


@pytest.mark.asyncio
async def test_place_search_errors_are_fatal():
    service = build_service()
    service.overpass.search.side_effect = GatewayTimeoutError("too broad")

    with pytest.raises(GatewayTimeoutError):
        await service.search(SearchRequest())
