"""Translation Provider Protocol

교체 가능한 번역 엔진을 위한 인터페이스와 공통 구현.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol

import httpx

from screentranslate.constants import Sentinel
from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import ProviderConfig, StoredCredentials
from screentranslate.schemas.pipeline import TranslationResult

logger = logging.getLogger(__name__)


class TranslationProviderError(Exception):
    """번역 엔진 오류 베이스"""

    recovery_suggestion: str | None = "잠시 후 다시 시도하거나 다른 번역 엔진을 선택하세요."


class EmptyInputError(TranslationProviderError):
    recovery_suggestion = "번역할 텍스트를 입력하세요."

    def __init__(self) -> None:
        super().__init__("번역할 텍스트가 비어 있습니다")


class InvalidConfigurationError(TranslationProviderError):
    recovery_suggestion = "번역 엔진의 API 키와 접속 설정을 확인하세요."

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"잘못된 엔진 설정: {reason}")


class ConnectionFailedError(TranslationProviderError):
    recovery_suggestion = "네트워크 연결 또는 번역 서버 실행 여부를 확인하세요."

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"연결 실패: {reason}")


class TranslationFailedError(TranslationProviderError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"번역 실패: {reason}")


class RateLimitedError(TranslationProviderError):
    def __init__(self, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            self.recovery_suggestion = f"{retry_after:g}초 후 다시 시도하세요."
        else:
            self.recovery_suggestion = "요청 한도를 초과했습니다. 잠시 후 다시 시도하세요."
        super().__init__("요청 한도 초과")


class TranslationProvider(Protocol):
    """텍스트 번역 엔진 인터페이스

    구현체:
    - LocalTranslationProvider: 오프라인 transformers 모델
    - MTranServerProvider: self-hosted MTranServer
    - BaiduTranslationProvider: Baidu 번역 API (서명 요청)
    - GoogleTranslationProvider, DeepLTranslationProvider: 일괄 번역 REST API
    - LLMTranslationProvider, ClaudeTranslationProvider, GeminiTranslationProvider,
      CompatibleTranslationProvider: LLM 프롬프트 기반 번역
    """

    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str: ...

    async def is_available(self) -> bool:
        """현재 사용 가능한지 여부 (자격 증명, 서버 상태 등)"""
        ...

    async def translate(
        self, text: str, source_language: str | None, target_language: str
    ) -> TranslationResult:
        """단일 텍스트 번역

        Raises:
            EmptyInputError: 공백뿐인 입력
            TranslationProviderError: 그 외 엔진 오류
        """
        ...

    async def translate_batch(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[TranslationResult]:
        """여러 텍스트 번역

        Returns:
            입력과 같은 순서, 같은 개수의 결과. 맞출 수 없으면 예외를 던진다.
        """
        ...

    async def check_connection(self) -> bool:
        """고정 문장 번역으로 연결 확인 (예외를 던지지 않음)"""
        ...


class BaseProvider(ABC):
    """HTTP 기반 provider 공통 구현

    - 순차 일괄 번역 (엔진이 일괄 API를 제공하지 않는 경우)
    - 자격 증명 조회 (요청마다 저장소에서 읽음)
    - HTTP 상태 코드 → TranslationProviderError 매핑
    """

    def __init__(
        self,
        provider_id: str,
        name: str,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore | None = None,
        credential_id: str | None = None,
    ) -> None:
        self._id = provider_id
        self._credential_id = credential_id or provider_id
        self._name = name
        self._client = client
        self._config = config
        self._credentials = credentials

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def is_available(self) -> bool:
        if self._credentials is None:
            return True
        return await self._credentials.has_credentials(self._credential_id)

    @abstractmethod
    async def translate(
        self, text: str, source_language: str | None, target_language: str
    ) -> TranslationResult: ...

    async def translate_batch(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[TranslationResult]:
        results: list[TranslationResult] = []
        for text in texts:
            results.append(await self.translate(text, source_language, target_language))
        return results

    async def check_connection(self) -> bool:
        try:
            await self.translate(Sentinel.TEXT, Sentinel.SOURCE, Sentinel.TARGET)
        except TranslationProviderError as e:
            logger.warning(f"{self._name} 연결 확인 실패: {e}")
            return False
        return True

    def _require_text(self, text: str) -> str:
        stripped = text.strip()
        if not stripped:
            raise EmptyInputError()
        return stripped

    async def _require_credentials(self) -> StoredCredentials:
        """자격 증명 조회

        Raises:
            InvalidConfigurationError: 저장된 자격 증명이 없는 경우
        """
        stored = await self._optional_credentials()
        if stored is None:
            raise InvalidConfigurationError(f"{self._name} API 키가 설정되지 않았습니다")
        return stored

    async def _optional_credentials(self) -> StoredCredentials | None:
        if self._credentials is None:
            return None
        return await self._credentials.get_credentials(self._credential_id)

    def _base_url(self) -> str:
        if not self._config.base_url:
            raise InvalidConfigurationError(f"{self._name} endpoint가 설정되지 않았습니다")
        return self._config.base_url.rstrip("/")

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self._config.custom_headers}
        if extra:
            headers.update(extra)
        return headers

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """HTTP 요청 후 2xx가 아니면 도메인 예외로 변환

        Raises:
            ConnectionFailedError: 연결 거부, 타임아웃
            InvalidConfigurationError: 401/403
            RateLimitedError: 429
            TranslationFailedError: 그 외 오류 응답
        """
        kwargs.setdefault("timeout", self._config.timeout)
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ConnectionFailedError(f"{self._name} 응답 시간 초과") from e
        except httpx.TransportError as e:
            raise ConnectionFailedError(f"{self._name} 연결 불가: {e}") from e

        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        if status in (401, 403):
            raise InvalidConfigurationError("API 키가 유효하지 않습니다")
        if status == 429:
            raise RateLimitedError(parse_retry_after(response))
        raise TranslationFailedError(f"API 오류: {status}")

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TranslationFailedError(f"JSON 파싱 실패: {e}") from e


def parse_retry_after(response: httpx.Response) -> float | None:
    """Retry-After 헤더를 초 단위로 파싱 (HTTP-date 형식은 무시)"""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def ensure_count(results: list[Any], expected: int, engine: str) -> None:
    """일괄 응답 개수 검증

    Raises:
        TranslationFailedError: 요청과 응답 개수가 다른 경우
    """
    if len(results) != expected:
        raise TranslationFailedError(
            f"{engine} 응답 개수 불일치: 요청 {expected}개, 응답 {len(results)}개"
        )
