"""Translation Provider 레지스트리

엔진 종류 → provider 인스턴스 매핑. 모든 등록/조회/생성은 하나의 lock으로 직렬화한다.
엔진 종류에 따른 provider 생성 분기는 _build() 한 곳에만 존재한다.
"""

import asyncio
import logging
from collections.abc import Mapping

import httpx

from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import CompatibleConfig, EngineType, ProviderConfig
from screentranslate.services.translation.baidu import BaiduTranslationProvider
from screentranslate.services.translation.base import TranslationProvider
from screentranslate.services.translation.compatible import CompatibleTranslationProvider
from screentranslate.services.translation.deepl import DeepLTranslationProvider
from screentranslate.services.translation.gemini import GeminiTranslationProvider
from screentranslate.services.translation.google import GoogleTranslationProvider
from screentranslate.services.translation.llm import (
    ClaudeTranslationProvider,
    LLMTranslationProvider,
)
from screentranslate.services.translation.local import LocalEngine, LocalTranslationProvider
from screentranslate.services.translation.mtran import MTranServerProvider

logger = logging.getLogger(__name__)

BUILTIN_ENGINES = (EngineType.LOCAL, EngineType.MTRAN)


class ProviderRegistry:
    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialStore,
        configs: Mapping[EngineType, ProviderConfig] | None = None,
        local_engine: LocalEngine | None = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._configs = dict(configs or {})
        self._local_engine = local_engine
        self._providers: dict[EngineType, TranslationProvider] = {}
        self._compatible: dict[str, TranslationProvider] = {}
        self._lock = asyncio.Lock()

    def config_for(self, engine: EngineType) -> ProviderConfig:
        return self._configs.get(engine) or ProviderConfig.default_for(engine)

    async def register_builtin_providers(self) -> None:
        """외부 설정 없이 동작하는 엔진(local, mtran) 등록"""
        async with self._lock:
            for engine in BUILTIN_ENGINES:
                if engine not in self._providers:
                    self._providers[engine] = self._build(engine, self.config_for(engine))

    async def register(self, engine: EngineType, provider: TranslationProvider) -> None:
        """provider 등록 (같은 엔진이 있으면 교체)"""
        async with self._lock:
            self._providers[engine] = provider
        logger.info(f"번역 엔진 등록: {engine}")

    async def unregister(self, engine: EngineType) -> None:
        async with self._lock:
            self._providers.pop(engine, None)

    async def provider(self, engine: EngineType) -> TranslationProvider | None:
        async with self._lock:
            return self._providers.get(engine)

    async def registered_engines(self) -> list[EngineType]:
        async with self._lock:
            return sorted(self._providers)

    async def available_engines(self) -> list[EngineType]:
        """등록된 엔진 중 현재 사용 가능한 엔진 (엔진 값 기준 정렬)"""
        async with self._lock:
            snapshot = list(self._providers.items())

        flags = await asyncio.gather(*(p.is_available() for _, p in snapshot))
        return sorted(engine for (engine, _), ok in zip(snapshot, flags, strict=True) if ok)

    async def is_engine_available(self, engine: EngineType) -> bool:
        provider = await self.provider(engine)
        return provider is not None and await provider.is_available()

    async def is_engine_configured(self, engine: EngineType) -> bool:
        """API 키 엔진은 자격 증명 존재 여부, 그 외는 provider 가용성으로 판단"""
        if engine.requires_api_key:
            return await self._credentials.has_credentials(engine.value)

        async with self._lock:
            provider = self._providers.get(engine) or self._build(engine, self.config_for(engine))
        return await provider.is_available()

    async def create_provider(
        self,
        engine: EngineType,
        config: ProviderConfig | None = None,
        force_refresh: bool = False,
    ) -> TranslationProvider:
        """엔진 provider 생성 및 등록

        이미 등록된 provider가 있으면 그대로 반환한다 (force_refresh=True면 재생성).
        """
        async with self._lock:
            existing = self._providers.get(engine)
            if existing is not None and not force_refresh:
                return existing

            provider = self._build(engine, config or self.config_for(engine))
            self._providers[engine] = provider

        logger.info(f"번역 엔진 생성: {engine} (refresh={force_refresh})")
        return provider

    def build_provider(self, engine: EngineType, config: ProviderConfig) -> TranslationProvider:
        """등록하지 않는 일회성 provider 생성 (상황별 프롬프트 적용용)"""
        return self._build(engine, config)

    def _build(self, engine: EngineType, config: ProviderConfig) -> TranslationProvider:
        match engine:
            case EngineType.LOCAL:
                return LocalTranslationProvider(self._client, config, self._local_engine)
            case EngineType.MTRAN:
                return MTranServerProvider(self._client, config, self._credentials)
            case EngineType.BAIDU:
                return BaiduTranslationProvider(self._client, config, self._credentials)
            case EngineType.GOOGLE:
                return GoogleTranslationProvider(self._client, config, self._credentials)
            case EngineType.DEEPL:
                return DeepLTranslationProvider(self._client, config, self._credentials)
            case EngineType.CLAUDE:
                return ClaudeTranslationProvider(self._client, config, self._credentials)
            case EngineType.GEMINI:
                return GeminiTranslationProvider(self._client, config, self._credentials)
            case EngineType.OPENAI | EngineType.OLLAMA | EngineType.CUSTOM:
                return LLMTranslationProvider(engine, self._client, config, self._credentials)
            case _:
                raise ValueError(f"Unknown translation engine: {engine!r}")

    # --- OpenAI 호환 endpoint ("custom:<index>") ---

    async def create_compatible_provider(
        self, config: CompatibleConfig, index: int, force_refresh: bool = False
    ) -> TranslationProvider:
        composite_id = CompatibleConfig.composite_id(index)
        async with self._lock:
            existing = self._compatible.get(composite_id)
            if existing is not None and not force_refresh:
                return existing

            provider = CompatibleTranslationProvider(
                config, index, self._client, self._credentials
            )
            self._compatible[composite_id] = provider

        logger.info(f"호환 엔진 생성: {composite_id} ({config.display_name})")
        return provider

    async def compatible_provider(self, composite_id: str) -> TranslationProvider | None:
        async with self._lock:
            return self._compatible.get(composite_id)

    async def remove_compatible_provider(self, composite_id: str) -> None:
        async with self._lock:
            self._compatible.pop(composite_id, None)

    async def clear_compatible_providers(self) -> None:
        async with self._lock:
            self._compatible.clear()
