"""MTranServer 번역 구현체

self-hosted 오프라인 번역 서버. 일괄 API가 없어 세그먼트별로 순차 요청한다.

API:
    POST {base}/translate {"text", "source_lang", "target_lang"} -> {"translation"}
"""

import logging
from urllib.parse import urlsplit, urlunsplit

import httpx

from screentranslate.constants import Timeout
from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.schemas.pipeline import TranslationResult
from screentranslate.services.translation.base import (
    BaseProvider,
    ConnectionFailedError,
    TranslationFailedError,
)

logger = logging.getLogger(__name__)

HEALTH_PATHS = ("/health", "/", "/translate")
AUTO_LANGUAGE = "auto"


def normalize_base_url(url: str) -> str:
    """localhost → 127.0.0.1 (IPv6 우선 해석으로 인한 연결 거부 방지)"""
    parts = urlsplit(url.rstrip("/"))
    if parts.hostname == "localhost":
        netloc = "127.0.0.1" + (f":{parts.port}" if parts.port else "")
        parts = parts._replace(netloc=netloc)
    return urlunsplit(parts)


class MTranServerProvider(BaseProvider):
    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore | None = None,
    ) -> None:
        super().__init__(
            EngineType.MTRAN.value, EngineType.MTRAN.display_name, client, config, credentials
        )

    async def is_available(self) -> bool:
        """서버 응답 여부 확인 (상태 코드와 무관하게 응답이 오면 사용 가능)"""
        base_url = normalize_base_url(self._base_url())
        for path in HEALTH_PATHS:
            try:
                await self._client.get(f"{base_url}{path}", timeout=Timeout.HEALTH_PROBE)
            except httpx.HTTPError:
                continue
            return True

        logger.info(f"MTranServer 응답 없음: {base_url}")
        return False

    async def translate(
        self, text: str, source_language: str | None, target_language: str
    ) -> TranslationResult:
        source = self._require_text(text)
        base_url = normalize_base_url(self._base_url())

        headers: dict[str, str] = {}
        stored = await self._optional_credentials()
        if stored is not None:
            headers["Authorization"] = f"Bearer {stored.api_key.get_secret_value()}"

        body = {
            "text": source,
            "source_lang": source_language or AUTO_LANGUAGE,
            "target_lang": target_language,
        }
        response = await self._send(
            "POST", f"{base_url}/translate", json=body, headers=self._headers(headers)
        )
        data = self._json(response)

        translation = data.get("translation") if isinstance(data, dict) else None
        if not isinstance(translation, str):
            raise TranslationFailedError("응답에 translation 필드가 없습니다")

        return TranslationResult(
            source_text=source,
            translated_text=translation,
            source_language=source_language,
            target_language=target_language,
        )

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code == 503:
            raise ConnectionFailedError("MTranServer 서비스 사용 불가 (503)")
        super()._raise_for_status(response)
