import asyncio
import logging
import re
from typing import List, Optional

import aiohttp

from trekking_search.core.config import settings
from trekking_search.core.errors import GatewayTimeoutError, ServiceUnavailableError
from trekking_search.models import Place, SearchRequest
from trekking_search.recall.normalizer import normalize_elements

logger = logging.getLogger(__name__)

# (element type, tag filter) pairs unioned into every search
TAG_FILTERS = [
    ("way", '["leisure"="nature_reserve"]'),
    ("way", '["natural"="peak"]'),
    ("way", '["tourism"="attraction"]'),
    ("relation", '["route"="hiking"]'),
    ("way", '["route"="hiking"]'),
    ("way", '["highway"="path"]'),
    ("way", '["highway"="footway"]'),
    ("node", '["tourism"="attraction"]'),
    ("node", '["natural"="peak"]'),
]


class OverpassStatusError(Exception):
    """Non-200 answer from the interpreter."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"Overpass responded with HTTP {status}: {body[:200]}")
        self.status = status
        self.body = body


class OverpassResponseError(Exception):
    """200 answer whose body is not a JSON object."""


_REGEX_SPECIALS = re.compile(r"([.^$*+?()\[\]{}|\\])")


def _escape(value: str) -> str:
    # Literal match inside a regex, inside a quoted QL string
    literal = _REGEX_SPECIALS.sub(r"\\\1", value)
    return literal.replace("\\", "\\\\").replace('"', '\\"')


def _is_timeout(error: Exception) -> bool:
    if isinstance(error, asyncio.TimeoutError):
        return True
    return isinstance(error, OverpassStatusError) and error.status == 504


def _is_retryable(error: Exception) -> bool:
    if _is_timeout(error):
        return True
    return isinstance(error, OverpassStatusError) and error.status >= 500


class OverpassClient:
    def __init__(
        self,
        api_url: str = None,
        timeout: int = None,
        max_retries: int = None,
        retry_delay: float = None,
        max_elements: int = None,
    ):
        self.api_url = api_url or settings.OVERPASS_API_URL
        self.timeout = timeout or settings.OVERPASS_TIMEOUT
        self.max_retries = settings.OVERPASS_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = settings.OVERPASS_RETRY_DELAY if retry_delay is None else retry_delay
        self.max_elements = max_elements or settings.OVERPASS_MAX_ELEMENTS

    @property
    def server_timeout(self) -> int:
        """Timeout declared inside the query, capped at what public instances accept."""
        return min(self.timeout, settings.OVERPASS_MAX_SERVER_TIMEOUT)

    @property
    def request_timeout(self) -> float:
        # Give up just before the interpreter does
        return max(self.server_timeout - 1, 1)

    async def search(self, request: SearchRequest) -> List[Place]:
        query = self.build_query(request)
        logger.debug(f"Running Overpass query: {query[:200]}...")

        elements = await self.execute(query)
        places = normalize_elements(elements, difficulty=request.difficulty, limit=request.limit)
        logger.debug(f"Normalized {len(places)} places from {len(elements)} elements")
        return places

    def build_query(self, request: SearchRequest) -> str:
        if request.has_coordinates:
            scope = f"(around:{int(request.radius * 1000)},{request.lat},{request.lon})"
        else:
            min_lat, min_lon, max_lat, max_lon = settings.chile_bounds
            scope = f"({min_lat},{min_lon},{max_lat},{max_lon})"

        return self._build_union(scope, request.name)

    def _build_union(self, scope: str, name: Optional[str] = None) -> str:
        name_filter = f'["name"~"{_escape(name)}",i]' if name else ""
        statements = "".join(
            f"{element}{tag}{name_filter}{scope};" for element, tag in TAG_FILTERS
        )
        # Centroids only, no full geometry
        return f"({statements});out center {self.max_elements};"

    async def execute(self, query: str) -> list:
        body = f"[out:json][timeout:{self.server_timeout}];{query}"

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Retrying Overpass query (attempt {attempt + 1}/{self.max_retries + 1}) "
                    f"in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

            try:
                data = await self._post_query(body)
                elements = data.get("elements") or []
                logger.debug(f"Overpass returned {len(elements)} elements")
                return elements
            except (
                OverpassStatusError,
                OverpassResponseError,
                aiohttp.ClientError,
                asyncio.TimeoutError,
            ) as e:
                last_error = e
                if not _is_retryable(e) or attempt == self.max_retries:
                    logger.error(
                        f"Overpass query failed (attempt {attempt + 1}/{self.max_retries + 1}): {e!r}"
                    )
                    break
                logger.warning(f"Transient Overpass error: {e!r}")

        if last_error is not None and _is_timeout(last_error):
            raise GatewayTimeoutError(
                "The query is taking too long. Try a smaller radius or a more specific name."
            )
        raise ServiceUnavailableError("Could not fetch trekking places from OpenStreetMap")

    async def _post_query(self, body: str) -> dict:
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        headers = {"Content-Type": "text/plain", "User-Agent": settings.HTTP_USER_AGENT}

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.api_url, data=body.encode("utf-8"), headers=headers) as resp:
                if resp.status != 200:
                    raise OverpassStatusError(resp.status, await resp.text())
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise OverpassResponseError(f"Overpass answered with a non-JSON body: {e}") from e

        if not isinstance(data, dict):
            raise OverpassResponseError(
                f"Overpass answered with {type(data).__name__} instead of an object"
            )
        return data


overpass_client = OverpassClient()
