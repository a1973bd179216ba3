import logging
from typing import Optional

from trekking_search.geocoding.geocoder import geocoder as default_geocoder
from trekking_search.models import QueryInterpretation, SearchRequest, SearchResponse
from trekking_search.nlp.query_parser import query_parser as default_parser
from trekking_search.nlp.recommender import recommender as default_recommender
from trekking_search.recall.overpass_client import overpass_client as default_overpass

logger = logging.getLogger(__name__)


def merge_interpretation(request: SearchRequest, interpretation: QueryInterpretation) -> SearchRequest:
    """Lay AI-inferred parameters under the ones the caller sent.

    Only fields the caller actually supplied count as explicit, so a
    defaulted radius does not hide a radius the model inferred.
    """
    inferred = interpretation.search_params.model_dump(exclude_none=True)
    explicit = request.model_dump(include=request.model_fields_set)
    if "lat" in explicit or "lon" in explicit:
        # Never pair a caller coordinate with a model one
        inferred.pop("lat", None)
        inferred.pop("lon", None)
    merged = {**inferred, **explicit, "query": request.query}
    return SearchRequest.model_validate(merged)


class TrekkingSearchService:
    def __init__(
        self,
        overpass=None,
        geocoder=None,
        parser=None,
        recommender=None,
    ):
        self.overpass = overpass or default_overpass
        self.geocoder = geocoder or default_geocoder
        self.parser = parser or default_parser
        self.recommender = recommender or default_recommender

    async def search(self, request: SearchRequest) -> SearchResponse:
        logger.info(f"Searching trekking places: {request.model_dump(exclude_none=True)}")

        params = await self._apply_query(request)
        params = await self._apply_geocoding(params)

        places = await self.overpass.search(params)
        logger.info(f"Found {len(places)} trekking places")

        recommendation: Optional[str] = None
        if request.query and self.recommender.is_available() and places:
            recommendation = await self.recommender.recommend(places, request.query)

        return SearchResponse(
            places=places,
            total=len(places),
            limit=params.limit,
            ai_recommendation=recommendation,
        )

    async def _apply_query(self, request: SearchRequest) -> SearchRequest:
        if not request.query or not self.parser.is_available():
            return request

        try:
            logger.info(f'Interpreting natural language query: "{request.query}"')
            difficulty = request.difficulty.value if request.difficulty else None
            interpretation = await self.parser.parse(request.query, difficulty=difficulty)
            merged = merge_interpretation(request, interpretation)
            logger.debug(f"AI suggested: {interpretation.search_params.model_dump(exclude_none=True)}")
            return merged
        except Exception as e:
            logger.warning(f"AI query interpretation failed: {e}. Continuing with a plain search.")
            return request

    async def _apply_geocoding(self, params: SearchRequest) -> SearchRequest:
        if not params.name or params.lat is not None or params.lon is not None:
            return params
        if not self.geocoder.is_available():
            return params

        try:
            logger.info(f'Geocoding place: "{params.name}"')
            result = await self.geocoder.geocode(params.name)
            logger.info(
                f"Geocoded {params.name} -> ({result.lat}, {result.lon}) via {result.provider}"
            )
            return params.model_copy(update={"lat": result.lat, "lon": result.lon})
        except Exception as e:
            logger.warning(f'Geocoding "{params.name}" failed: {e}. Continuing without coordinates.')
            return params


search_service = TrekkingSearchService()
