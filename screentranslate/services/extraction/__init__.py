"""Extraction 모듈

사용법:
    from screentranslate.services.extraction import TextExtractionEngine, create_vision_backend

    engine = TextExtractionEngine(create_vision_backend(settings, client))
    result = await engine.analyze(image)

백엔드 선택 (.env VISION_PROVIDER):
    - "gemini": Google Gemini API (기본값)
    - "openai": OpenAI 및 호환 API
    - "claude": Anthropic Claude
    - "ollama": 로컬 Ollama
"""

import httpx
from pydantic import SecretStr

from screentranslate.config import Settings
from screentranslate.services.extraction import claude, ollama, openai
from screentranslate.services.extraction.base import AnalysisError, VisionBackend
from screentranslate.services.extraction.engine import TextExtractionEngine
from screentranslate.services.extraction.gemini import DEFAULT_MODEL as GEMINI_DEFAULT_MODEL
from screentranslate.services.extraction.gemini import GeminiVisionBackend

__all__ = ["AnalysisError", "TextExtractionEngine", "VisionBackend", "create_vision_backend"]


def _api_key(settings: Settings, fallback: SecretStr | None) -> SecretStr | None:
    if settings.vision_api_key is not None and settings.vision_api_key.get_secret_value():
        return settings.vision_api_key
    return fallback


def create_vision_backend(settings: Settings, client: httpx.AsyncClient) -> VisionBackend:
    """설정에 따라 vision 백엔드 생성"""
    provider = settings.vision_provider
    if provider == "gemini":
        return GeminiVisionBackend(
            api_key=_api_key(settings, settings.gemini_api_key),
            model=settings.vision_model or GEMINI_DEFAULT_MODEL,
            timeout=settings.vision_timeout,
        )
    if provider == "openai":
        return openai.OpenAIVisionBackend(
            client,
            base_url=settings.vision_base_url or openai.DEFAULT_BASE_URL,
            model=settings.vision_model or openai.DEFAULT_MODEL,
            api_key=_api_key(settings, settings.openai_api_key),
            timeout=settings.vision_timeout,
        )
    if provider == "claude":
        return claude.ClaudeVisionBackend(
            client,
            base_url=settings.vision_base_url or claude.DEFAULT_BASE_URL,
            model=settings.vision_model or claude.DEFAULT_MODEL,
            api_key=_api_key(settings, settings.claude_api_key),
            timeout=settings.vision_timeout,
        )
    if provider == "ollama":
        return ollama.OllamaVisionBackend(
            client,
            base_url=settings.vision_base_url or ollama.DEFAULT_BASE_URL,
            model=settings.vision_model or ollama.DEFAULT_MODEL,
            timeout=settings.vision_timeout,
        )
    raise ValueError(f"Unknown vision provider: {provider!r}")
