import logging
from typing import List, Optional

from google import genai
from google.genai import errors, types

from trekking_search.core.config import settings
from trekking_search.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("not found", "not supported", "is not found for api version")


def is_model_unavailable(error: Exception) -> bool:
    """True when the error means "this model name does not exist / cannot serve"."""
    if isinstance(error, errors.APIError) and error.code == 404:
        return True
    message = str(error).lower()
    return "404" in message or any(marker in message for marker in _NOT_FOUND_MARKERS)


class GeminiClient:
    def __init__(
        self,
        api_key: str = None,
        model: str = None,
        fallback_models: List[str] = None,
        client=None,
    ):
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or settings.GEMINI_MODEL
        self.fallback_models = (
            settings.GEMINI_FALLBACK_MODELS if fallback_models is None else fallback_models
        )
        self._client = client

    def is_available(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def models_to_try(self) -> List[str]:
        return [self.model] + [m for m in self.fallback_models if m != self.model]

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_output_tokens: Optional[int] = None,
        json_output: bool = False,
        thinking_budget: Optional[int] = None,
    ) -> str:
        """Generate text, moving down the model list while models are missing.

        Any other failure is raised as is.
        """
        if not self.is_available():
            raise ServiceUnavailableError("AI service is not configured. Set GEMINI_API_KEY.")

        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json" if json_output else None,
            thinking_config=(
                types.ThinkingConfig(thinking_budget=thinking_budget)
                if thinking_budget is not None
                else None
            ),
        )
        client = self._get_client()
        models = self.models_to_try

        last_error: Optional[Exception] = None
        for index, model_name in enumerate(models):
            try:
                logger.debug(f"[Gemini] Trying model: {model_name}")
                response = await client.aio.models.generate_content(
                    model=model_name, contents=prompt, config=config
                )
                text = (response.text or "").strip()
                if not text:
                    raise ValueError(f"Empty response from {model_name}")

                if model_name != self.model:
                    logger.warning(f"[Gemini] {self.model} unavailable, answered by {model_name}")
                return text
            except Exception as e:
                last_error = e
                is_last = index == len(models) - 1
                if is_model_unavailable(e) and not is_last:
                    logger.warning(f"[Gemini] Model {model_name} unavailable ({e}), trying next model")
                    continue
                if is_last:
                    logger.error(f"[Gemini] All models failed. Last error: {e}")
                raise

        raise last_error or RuntimeError("No Gemini model could serve the request")


gemini_client = GeminiClient()
