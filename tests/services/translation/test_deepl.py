import pytest

from screentranslate.infra.credentials import MemoryCredentialStore
from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.services.translation.base import (
    RateLimitedError,
    TranslationFailedError,
)
from screentranslate.services.translation.deepl import (
    DeepLTranslationProvider,
    to_deepl_language,
)
from tests.conftest import RecordingHandler, json_response, mock_client


def _provider(handler: object, credentials: MemoryCredentialStore) -> DeepLTranslationProvider:
    config = ProviderConfig.default_for(EngineType.DEEPL)
    return DeepLTranslationProvider(mock_client(handler), config, credentials)  # type: ignore[arg-type]


def _translations(*texts: str) -> dict[str, object]:
    return {"translations": [{"detected_source_language": "EN", "text": t} for t in texts]}


class TestDeepLLanguage:
    def test_target_variants(self) -> None:
        assert to_deepl_language("zh-Hans", target=True) == "ZH-HANS"
        assert to_deepl_language("en", target=True) == "EN-US"
        assert to_deepl_language("ko", target=True) == "KO"

    def test_source_drops_region(self) -> None:
        assert to_deepl_language("en-US", target=False) == "EN"
        assert to_deepl_language("zh-Hans", target=False) == "ZH"


class TestDeepLTranslationProvider:
    async def test_batch(self, credentials: MemoryCredentialStore) -> None:
        handler = RecordingHandler(json_response(_translations("Hallo", "Welt")))
        results = await _provider(handler, credentials).translate_batch(
            ["Hello", "World"], "en", "de"
        )

        assert [r.translated_text for r in results] == ["Hallo", "Welt"]
        request = handler.requests[0]
        assert str(request.url) == "https://api.deepl.com/v2/translate"
        assert request.headers["Authorization"] == "DeepL-Auth-Key deepl-key"
        assert handler.body() == {"text": ["Hello", "World"], "target_lang": "DE", "source_lang": "EN"}

    async def test_quota_exceeded(self, credentials: MemoryCredentialStore) -> None:
        handler = RecordingHandler(json_response({}, status_code=456))
        with pytest.raises(TranslationFailedError, match="사용량 한도"):
            await _provider(handler, credentials).translate("Hello", None, "de")

    async def test_rate_limited_with_retry_after(self, credentials: MemoryCredentialStore) -> None:
        handler = RecordingHandler(json_response({}, status_code=429, headers={"Retry-After": "7"}))
        with pytest.raises(RateLimitedError) as exc_info:
            await _provider(handler, credentials).translate("Hello", None, "de")
        assert exc_info.value.retry_after == 7

    async def test_count_mismatch(self, credentials: MemoryCredentialStore) -> None:
        handler = RecordingHandler(json_response(_translations("Hallo")))
        with pytest.raises(TranslationFailedError):
            await _provider(handler, credentials).translate_batch(["a", "b"], None, "de")
