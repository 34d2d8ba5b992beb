"""
Vision Model Client

Gemini exposes an OpenAI-compatible API, so we use the openai library
and send the form image inline as a base64 data URL.

One call per request. No retry: a failed call surfaces as MODEL_ERROR and
the operator decides whether to upload again.
"""
import httpx
import openai
from openai import OpenAI

from placement_tracker.core.config import get_settings
from placement_tracker.core.exceptions import ExtractionError, ExtractionFailure
from placement_tracker.core.logger import get_logger

logger = get_logger(__name__)


class VisionClient:
    """
    Wrapper for a vision-capable chat model.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: int = 60,
        max_tokens: int = 2000,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.model = model
        self.max_tokens = max_tokens
        self._client: OpenAI = None

    @property
    def client(self) -> OpenAI:
        # Built on first call so a missing key only fails requests that need the model
        if self._client is None:
            if not self.api_key:
                raise ExtractionError(
                    ExtractionFailure.MODEL_ERROR, "Vision model API key is not configured"
                )
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                max_retries=0
            )
        return self._client

    def generate(self, prompt: str, image_base64: str, mime_type: str) -> str:
        """
        Send the instruction and the image together; return the full text reply.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime_type};base64,{image_base64}"}
                            }
                        ]
                    }
                ],
                max_tokens=self.max_tokens,
                temperature=0.1  # Low temp for consistent structured output
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.error("Vision model network error: %s", exc)
            raise ExtractionError(
                ExtractionFailure.MODEL_ERROR, "Vision model is unreachable"
            ) from exc
        except openai.APIError as exc:
            logger.error("Vision model API error: %s", exc)
            raise ExtractionError(
                ExtractionFailure.MODEL_ERROR, "Vision model request failed"
            ) from exc

        if not response.choices:
            raise ExtractionError(ExtractionFailure.MODEL_ERROR, "Vision model returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise ExtractionError(ExtractionFailure.MODEL_ERROR, "Vision model returned an empty response")
        return content

    def test_connection(self) -> bool:
        """Test if the model endpoint is reachable (text-only request)."""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": "Reply with exactly: OK"}],
                max_tokens=10
            )
            return "OK" in (response.choices[0].message.content or "").upper()
        except (ExtractionError, openai.APIError, httpx.HTTPError) as e:
            logger.error("Vision model connection failed: %s", e)
            return False


# Singleton instance
_vision_client: VisionClient = None


def get_vision_client() -> VisionClient:
    """Get or create the vision client (singleton pattern)"""
    global _vision_client
    if _vision_client is None:
        settings = get_settings()
        _vision_client = VisionClient(
            api_key=settings.vision_api_key,
            base_url=settings.vision_base_url,
            model=settings.vision_model,
            timeout_seconds=settings.vision_timeout_seconds,
            max_tokens=settings.vision_max_tokens,
        )
    return _vision_client
