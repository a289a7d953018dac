import logging
from typing import Optional
import httpx

from ..config.config import settings
from ..errors import ExternalServiceError

logger = logging.getLogger(__name__)


class GenerativeTextClient:
    """
    prompt -> text over the generateContent REST call.
    Pass an http_client to share a connection pool (or mock it in tests);
    otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self._client = http_client
        self._base_url = (base_url or settings.GENERATIVE_API_URL).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.GENERATIVE_API_KEY
        self._model = model or settings.GENERATIVE_MODEL

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/v1beta/models/{self._model}:generateContent"

    async def _post(self, payload: dict) -> httpx.Response:
        params = {"key": self._api_key or ""}
        if self._client is not None:
            return await self._client.post(self.endpoint, params=params, json=payload)
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            return await client.post(self.endpoint, params=params, json=payload)

    async def generate(self, prompt: str) -> str:
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = await self._post(payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Generative service answered {e.response.status_code}: {e.response.text}")
            raise ExternalServiceError(f"The generative service answered {e.response.status_code}.") from e
        except httpx.RequestError as e:
            logger.error(f"Generative service unreachable: {e}", exc_info=True)
            raise ExternalServiceError("The generative service could not be reached.") from e

        try:
            body = response.json()
            return body["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Malformed generative service response: {response.text[:200]}")
            raise ExternalServiceError("The generative service returned a malformed response.") from e
