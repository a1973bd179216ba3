import json
import logging
from typing import Optional

from pydantic import ValidationError

from trekking_search.core.config import settings
from trekking_search.core.errors import (
    ServiceUnavailableError,
    TrekkingSearchError,
    UpstreamError,
)
from trekking_search.models import QueryInterpretation
from trekking_search.nlp.gemini_client import gemini_client as default_client

logger = logging.getLogger(__name__)


class QueryParser:
    SYSTEM_PROMPT = f"""
    You are an expert assistant for trekking and hiking in Chile.
    Analyze the user's query and extract structured search parameters.

    Context:
    - We search trekking/hiking places in Chile.
    - Chile's coordinates: latitude {settings.CHILE_MIN_LAT} to {settings.CHILE_MAX_LAT}, longitude {settings.CHILE_MIN_LON} to {settings.CHILE_MAX_LON}.
    - Difficulty levels: easy, moderate, hard, expert.

    Instructions:
    1. Identify the place name mentioned, if any.
    2. Identify the requested or preferred difficulty.
    3. If a distance or "near" is mentioned, infer a search radius in km.
    4. If a city or region is mentioned, use it as the location reference.

    Return ONLY a JSON object with this shape:
    {{
        "reasoning": "Short explanation of how you read the query",
        "searchParams": {{
            "name": "place name if one was mentioned",
            "lat": number, only if you can infer specific coordinates,
            "lon": number, only if you can infer specific coordinates,
            "radius": number in km (default 50),
            "difficulty": "easy|moderate|hard|expert", only if mentioned
        }}
    }}
    """

    def __init__(self, client=None):
        self.client = client or default_client

    def is_available(self) -> bool:
        return self.client.is_available()

    def _extract_json(self, response: str):
        """Extract JSON object from LLM response heavily mixed with text."""
        # 1. Remove <think> blocks
        if "<think>" in response:
            response = response.split("</think>")[-1].strip()

        # 2. Try to find the outer-most JSON object
        start = response.find("{")
        end = response.rfind("}") + 1

        if start != -1 and end > start:
            try:
                return json.loads(response[start:end])
            except json.JSONDecodeError:
                pass

        # 3. Fallback: Try cleaning markdown code blocks
        clean_response = response.replace("```json", "").replace("```", "").strip()
        try:
            return json.loads(clean_response)
        except json.JSONDecodeError:
            return None

    def _user_message(self, query: str, difficulty: Optional[str]) -> str:
        message = f'User query: "{query}"\n'
        if difficulty:
            message += f"Preferences: {json.dumps({'difficulty': difficulty})}\n"
        return message + "\nAnalyze this query and extract the search parameters."

    async def parse(self, query: str, difficulty: Optional[str] = None) -> QueryInterpretation:
        if not self.is_available():
            raise ServiceUnavailableError("AI service is not configured. Set GEMINI_API_KEY.")

        try:
            logger.debug(f"[Gemini] Parsing query: {query}")
            response = await self.client.generate(
                self._user_message(query, difficulty),
                system_prompt=self.SYSTEM_PROMPT,
                temperature=settings.PARSER_TEMPERATURE,
                json_output=True,
            )
            data = self._extract_json(response)
            if not isinstance(data, dict):
                raise ValueError("Failed to parse JSON")

            interpretation = QueryInterpretation.model_validate(data)
        except TrekkingSearchError:
            raise
        except (ValueError, ValidationError) as e:
            logger.error(f"[Gemini] Unusable answer for '{query}': {e}")
            raise UpstreamError(f"Could not interpret the query with Gemini: {e}") from e
        except Exception as e:
            logger.error(f"[Gemini] Error parsing query '{query}': {e}", exc_info=True)
            raise UpstreamError(f"Could not process the query with Gemini: {e}") from e

        logger.debug(
            f"[Gemini] Parsed query. Parameters: "
            f"{interpretation.search_params.model_dump(exclude_none=True)}"
        )
        return interpretation


query_parser = QueryParser()
