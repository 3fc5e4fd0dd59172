"""Gemini 기반 번역 구현체"""

# pyright: reportMissingTypeStubs=false

import logging

import httpx
from google import genai
from google.genai import errors, types

from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.services.translation.base import (
    ConnectionFailedError,
    InvalidConfigurationError,
    RateLimitedError,
    TranslationFailedError,
)
from screentranslate.services.translation.prompting import PromptTranslationProvider

logger = logging.getLogger(__name__)


class GeminiTranslationProvider(PromptTranslationProvider):
    """Google Gemini API를 사용한 텍스트 번역

    HTTP 호출은 google-genai SDK가 담당하므로 httpx client는 사용하지 않는다.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore,
    ) -> None:
        super().__init__(
            EngineType.GEMINI.value, EngineType.GEMINI.display_name, client, config, credentials
        )

    async def _complete(self, prompt: str) -> str:
        stored = await self._require_credentials()
        client = genai.Client(
            api_key=stored.api_key.get_secret_value(),
            http_options=types.HttpOptions(timeout=int(self.config.timeout * 1000)),
        )

        try:
            response = await client.aio.models.generate_content(
                model=self.config.model_name or EngineType.GEMINI.default_model or "",
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.config.temperature,
                    max_output_tokens=self.config.max_tokens,
                ),
            )
        except errors.APIError as e:
            if e.code in (401, 403):
                raise InvalidConfigurationError("API 키가 유효하지 않습니다") from e
            if e.code == 429:
                raise RateLimitedError() from e
            raise TranslationFailedError(f"Gemini API 오류: {e.code}") from e
        except httpx.TimeoutException as e:
            raise ConnectionFailedError(f"{self.name} 응답 시간 초과") from e
        except httpx.TransportError as e:
            raise ConnectionFailedError(f"{self.name} 연결 불가: {e}") from e

        if not response.text:
            raise TranslationFailedError("빈 응답")

        return response.text
