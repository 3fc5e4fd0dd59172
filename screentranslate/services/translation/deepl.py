"""DeepL API 구현체

여러 텍스트를 한 번의 요청으로 번역한다.
"""

import httpx

from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.schemas.pipeline import TranslationResult
from screentranslate.services.translation.base import (
    BaseProvider,
    TranslationFailedError,
    ensure_count,
)

QUOTA_EXCEEDED = 456

LANGUAGE_CODES = {"zh-Hans": "ZH-HANS", "zh-Hant": "ZH-HANT", "en": "EN-US", "pt": "PT-BR"}


def to_deepl_language(code: str, *, target: bool) -> str:
    """DeepL 언어 코드 (대문자). source에는 지역 변형을 붙이지 않는다."""
    if not target:
        return code.split("-")[0].upper()
    return LANGUAGE_CODES.get(code, code.upper())


class DeepLTranslationProvider(BaseProvider):
    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore,
    ) -> None:
        super().__init__(
            EngineType.DEEPL.value, EngineType.DEEPL.display_name, client, config, credentials
        )

    async def translate(
        self, text: str, source_language: str | None, target_language: str
    ) -> TranslationResult:
        results = await self.translate_batch([text], source_language, target_language)
        return results[0]

    async def translate_batch(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[TranslationResult]:
        if not texts:
            return []

        sources = [self._require_text(t) for t in texts]
        stored = await self._require_credentials()

        body: dict[str, object] = {
            "text": sources,
            "target_lang": to_deepl_language(target_language, target=True),
        }
        if source_language:
            body["source_lang"] = to_deepl_language(source_language, target=False)

        response = await self._send(
            "POST",
            f"{self._base_url()}/translate",
            json=body,
            headers=self._headers(
                {"Authorization": f"DeepL-Auth-Key {stored.api_key.get_secret_value()}"}
            ),
        )
        data = self._json(response)

        try:
            translated = [t["text"] for t in data["translations"]]
        except (KeyError, TypeError) as e:
            raise TranslationFailedError("응답에 translations가 없습니다") from e

        ensure_count(translated, len(sources), self.name)

        return [
            TranslationResult(
                source_text=source,
                translated_text=result,
                source_language=source_language,
                target_language=target_language,
            )
            for source, result in zip(sources, translated, strict=True)
        ]

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code == QUOTA_EXCEEDED:
            raise TranslationFailedError("DeepL 사용량 한도 초과")
        super()._raise_for_status(response)
