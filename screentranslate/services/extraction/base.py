"""Vision Backend Protocol

교체 가능한 비전 모델(VLM) 호출을 위한 인터페이스 정의.
프롬프트 구성과 응답 파싱은 TextExtractionEngine이 담당하고,
backend는 이미지 + 프롬프트를 보내고 모델의 텍스트 응답만 반환한다.
"""

import logging
from typing import Any, Protocol

import httpx
from pydantic import SecretStr

from screentranslate.services.translation.base import parse_retry_after

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    pass


class VisionBackend(Protocol):
    """비전 모델 인터페이스

    구현체:
    - OpenAIVisionBackend: OpenAI 및 호환 chat/completions API
    - ClaudeVisionBackend: Anthropic Messages API
    - OllamaVisionBackend: Ollama /api/generate
    - GeminiVisionBackend: Google Gemini API
    """

    @property
    def name(self) -> str: ...

    async def complete(
        self, image_b64: str, mime_type: str, system_prompt: str, user_prompt: str
    ) -> str:
        """이미지와 프롬프트를 보내고 모델 응답 텍스트 반환

        Raises:
            AnalysisError: 인증 실패, 요청 한도 초과, 서버 오류, 빈 응답 등
        """
        ...


class HttpVisionBackend:
    """httpx 기반 backend 공통 구현"""

    name = "vision"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        model: str,
        api_key: SecretStr | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout

    def _require_key(self) -> str:
        if self._api_key is None or not self._api_key.get_secret_value():
            raise AnalysisError(f"{self.name} API 키가 설정되지 않았습니다")
        return self._api_key.get_secret_value()

    async def _post(self, url: str, body: dict[str, Any], headers: dict[str, str]) -> Any:
        try:
            response = await self._client.post(
                url, json=body, headers=headers, timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            raise AnalysisError(f"{self.name} API 타임아웃") from e
        except httpx.TransportError as e:
            raise AnalysisError(f"{self.name} API 연결 실패: {e}") from e

        raise_for_vision_status(response, self.name)

        try:
            return response.json()
        except ValueError as e:
            raise AnalysisError(f"{self.name} 응답 JSON 파싱 실패: {e}") from e


def raise_for_vision_status(response: httpx.Response, name: str) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return

    logger.warning(f"{name} API 오류 응답: {status}")
    if status == 401:
        raise AnalysisError(f"{name} 인증 실패: API 키를 확인하세요")
    if status == 429:
        retry_after = parse_retry_after(response)
        suffix = f" ({retry_after:g}초 후 재시도)" if retry_after is not None else ""
        raise AnalysisError(f"{name} 요청 한도 초과{suffix}")
    if status == 404:
        raise AnalysisError(f"{name} 모델을 찾을 수 없습니다")
    if status >= 500:
        raise AnalysisError(f"{name} 서버 오류: {status}")
    raise AnalysisError(f"{name} API 오류: {status}")
