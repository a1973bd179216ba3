import logging
from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from trekking_search.core.config import settings
from trekking_search.core.logging_config import setup_logging
from trekking_search.models import Difficulty, SearchRequest, SearchResponse
from trekking_search.services.search import search_service

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Trekking Chile API",
    description="Trekking and hiking places in Chile from OpenStreetMap, "
    "with optional geocoding and AI-assisted search.",
    version="1.0",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = APIRouter(prefix=settings.API_PREFIX, tags=["trekking"])


@app.on_event("startup")
async def startup_event():
    setup_logging()
    logger.info(
        f"Trekking Chile API ready (AI: {search_service.parser.is_available()}, "
        f"geocoding: {search_service.geocoder.is_available()})"
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@router.get(
    "/trekking-places",
    response_model=SearchResponse,
    response_model_exclude_none=True,
    summary="Search trekking and hiking places in Chile",
)
async def search_trekking_places(
    lat: Optional[float] = Query(None, ge=settings.CHILE_MIN_LAT, le=settings.CHILE_MAX_LAT),
    lon: Optional[float] = Query(None, ge=settings.CHILE_MIN_LON, le=settings.CHILE_MAX_LON),
    radius: Optional[float] = Query(None, ge=1, le=500),
    difficulty: Optional[Difficulty] = None,
    name: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    query: Optional[str] = Query(
        None, description='Natural language search, e.g. "easy trails near Santiago"'
    ),
):
    supplied = {
        "lat": lat,
        "lon": lon,
        "radius": radius,
        "difficulty": difficulty,
        "name": (name or "").strip() or None,
        "limit": limit,
        "query": (query or "").strip() or None,
    }
    # Only what the caller sent counts as explicit when merging AI parameters
    req = SearchRequest(**{k: v for k, v in supplied.items() if v is not None})
    return await search_service.search(req)


app.include_router(router)


@app.get("/health", tags=["health"])
async def health():
    return {
        "status": "ok",
        "ai": search_service.parser.is_available(),
        "geocoding": search_service.geocoder.is_available(),
    }


if __name__ == "__main__":
    uvicorn.run(app, host=settings.SERVICE_HOST, port=settings.APP_PORT)
