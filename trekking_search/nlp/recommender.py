import logging
from typing import List, Optional

from trekking_search.core.config import settings
from trekking_search.models import Place
from trekking_search.nlp.gemini_client import gemini_client as default_client

logger = logging.getLogger(__name__)


class RecommendationWriter:
    PROMPT_TEMPLATE = """Based on the following trekking places found in Chile, write a short, useful recommendation for the user.

Original query: "{query}"

Places found:
{places}

Write a 2-3 sentence recommendation that:
1. Summarizes the best places found
2. Mentions their standout features
3. Gives useful advice if relevant

Answer in the language of the original query, with plain text only."""

    def __init__(self, client=None, max_places: int = None):
        self.client = client or default_client
        self.max_places = max_places or settings.SUMMARY_MAX_PLACES

    def is_available(self) -> bool:
        return self.client.is_available()

    def _describe(self, place: Place) -> str:
        difficulty = place.difficulty.value if place.difficulty else "not specified"
        distance = place.distance if place.distance is not None else "N/A"
        return (
            f"- {place.name} ({place.category.value}): "
            f"{place.description or 'No description'}. "
            f"Difficulty: {difficulty}. Distance: {distance} km"
        )

    def build_prompt(self, places: List[Place], query: str) -> str:
        summary = "\n".join(self._describe(p) for p in places[: self.max_places])
        return self.PROMPT_TEMPLATE.format(query=query, places=summary)

    async def recommend(self, places: List[Place], query: str) -> Optional[str]:
        """Never raises: a missing recommendation is not worth failing a search."""
        if not self.is_available() or not places:
            return None

        try:
            logger.debug(f"[Gemini] Writing recommendation for {len(places)} places")
            text = await self.client.generate(
                self.build_prompt(places, query),
                temperature=settings.SUMMARY_TEMPERATURE,
                max_output_tokens=settings.SUMMARY_MAX_TOKENS,
                thinking_budget=settings.SUMMARY_THINKING_BUDGET,
            )
            return (text or "").strip() or None
        except Exception as e:
            logger.warning(f"[Gemini] Recommendation failed: {e}. Continuing without it.")
            return None


recommender = RecommendationWriter()
