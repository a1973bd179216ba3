import asyncio
import json
import os
import sys

# Add the project root directory to the python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from trekking_search.core.config import settings
from trekking_search.core.logging_config import setup_logging
from trekking_search.models import SearchRequest
from trekking_search.services.search import merge_interpretation, search_service


# Mirror stdout into the trace log
class Tee(object):
    def __init__(self, *files):
        self.files = files

    def write(self, obj):
        for f in self.files:
            f.write(obj)
            f.flush()

    def flush(self):
        for f in self.files:
            f.flush()


async def trace_search(**params):
    request = SearchRequest(**params)
    print(f"\n{'='*60}", flush=True)
    print(f"REQUEST: {request.model_dump(exclude_none=True)}", flush=True)
    print(f"{'='*60}", flush=True)

    # 1. Query interpretation
    print("\n--- [Phase 1] Query Parser ---", flush=True)
    merged = request
    if request.query and search_service.parser.is_available():
        try:
            interpretation = await search_service.parser.parse(request.query)
            print(f"Reasoning: {interpretation.reasoning}", flush=True)
            print(
                "Inferred:\n"
                + json.dumps(
                    interpretation.search_params.model_dump(mode="json", exclude_none=True),
                    indent=2,
                    ensure_ascii=False,
                ),
                flush=True,
            )
            merged = merge_interpretation(request, interpretation)
        except Exception as e:
            print(f"Parser failed: {e}", flush=True)
    else:
        print("Skipped (no query or AI not configured)", flush=True)

    # 2. Geocoding
    print("\n--- [Phase 2] Geocoder ---", flush=True)
    if merged.name and not merged.has_coordinates and search_service.geocoder.is_available():
        try:
            result = await search_service.geocoder.geocode(merged.name)
            print(f"{result.provider}: {result.formatted_address} ({result.lat}, {result.lon})", flush=True)
            merged = merged.model_copy(update={"lat": result.lat, "lon": result.lon})
        except Exception as e:
            print(f"Geocoding failed: {e}", flush=True)
    else:
        print("Skipped", flush=True)

    # 3. Overpass
    print("\n--- [Phase 3] Overpass ---", flush=True)
    print(search_service.overpass.build_query(merged), flush=True)
    places = await search_service.overpass.search(merged)
    print(f"Total places: {len(places)}", flush=True)
    for i, p in enumerate(places[:10]):
        print(
            f"[{i+1}] {p.id} | {p.name} ({p.category.value}) "
            f"difficulty={p.difficulty.value if p.difficulty else 'N/A'} "
            f"at ({p.coordinates.lat:.4f}, {p.coordinates.lon:.4f})",
            flush=True,
        )

    # 4. Recommendation
    if request.query:
        print("\n--- [Phase 4] Recommendation ---", flush=True)
        print(await search_service.recommender.recommend(places, request.query), flush=True)


async def main():
    await trace_search(lat=-33.4489, lon=-70.6693, radius=30, limit=10)
    await trace_search(name="Torres del Paine", limit=10)
    await trace_search(query="easy trails near Santiago", limit=10)


if __name__ == "__main__":
    setup_logging(log_file=settings.APP_LOG_FILENAME)
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    f = open(settings.TRACE_LOG_PATH, "a")
    sys.stdout = Tee(sys.stdout, f)
    asyncio.run(main())
