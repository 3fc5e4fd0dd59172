"""Translation 모듈

사용법:
    from screentranslate.services.translation import ProviderRegistry

    registry = ProviderRegistry(client, credentials, configs)
    await registry.register_builtin_providers()
    provider = await registry.create_provider(EngineType.DEEPL)
    results = await provider.translate_batch(texts, "en", "ko")

엔진 (.env TRANSLATION_ENGINE / FALLBACK_ENGINE):
    - "local": transformers NLLB 오프라인 모델 (기본값)
    - "mtran": MTranServer
    - "baidu", "google", "deepl": 번역 API
    - "openai", "claude", "gemini", "ollama", "custom": LLM
"""

from screentranslate.services.translation.base import (
    ConnectionFailedError,
    EmptyInputError,
    InvalidConfigurationError,
    RateLimitedError,
    TranslationFailedError,
    TranslationProvider,
    TranslationProviderError,
)
from screentranslate.services.translation.registry import ProviderRegistry

__all__ = [
    "ConnectionFailedError",
    "EmptyInputError",
    "InvalidConfigurationError",
    "ProviderRegistry",
    "RateLimitedError",
    "TranslationFailedError",
    "TranslationProvider",
    "TranslationProviderError",
]
