"""Google Cloud Translation (v2) 구현체

여러 텍스트를 한 번의 요청으로 번역한다. API 키는 query parameter로 전달.
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

LANGUAGE_CODES = {"zh-Hans": "zh-CN", "zh-Hant": "zh-TW"}


def to_google_language(code: str) -> str:
    return LANGUAGE_CODES.get(code, code)


class GoogleTranslationProvider(BaseProvider):
    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore,
    ) -> None:
        super().__init__(
            EngineType.GOOGLE.value, EngineType.GOOGLE.display_name, client, config, credentials
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
            "q": sources,
            "target": to_google_language(target_language),
            "format": "text",
        }
        if source_language:
            body["source"] = to_google_language(source_language)

        response = await self._send(
            "POST",
            self._base_url(),
            params={"key": stored.api_key.get_secret_value()},
            json=body,
            headers=self._headers(),
        )
        data = self._json(response)

        try:
            translations = data["data"]["translations"]
            translated = [t["translatedText"] for t in translations]
        except (KeyError, TypeError) as e:
            raise TranslationFailedError("응답에 data.translations가 없습니다") from e

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
