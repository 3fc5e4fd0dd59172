"""서비스 구성 (composition root)

프로세스 전역 싱글톤 대신 명시적으로 생성한 인스턴스를 주입한다.
"""

import httpx
from pydantic import BaseModel, ConfigDict

from screentranslate.config import Settings
from screentranslate.infra.credentials import CredentialStore, SettingsCredentialStore
from screentranslate.schemas.engine import EngineType
from screentranslate.services.extraction import TextExtractionEngine, create_vision_backend
from screentranslate.services.flow import FlowController, FlowOptions
from screentranslate.services.orchestrator import TranslationOrchestrator
from screentranslate.services.rendering import MaskMode, OverlayMode, OverlayRenderer, OverlayStyle
from screentranslate.services.translation import ProviderRegistry


class Services(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    client: httpx.AsyncClient
    registry: ProviderRegistry
    extraction: TextExtractionEngine
    orchestrator: TranslationOrchestrator
    renderer: OverlayRenderer
    flow: FlowController


def default_options(settings: Settings) -> FlowOptions:
    return FlowOptions(
        target_language=settings.target_language,
        source_language=settings.source_language,
        engine=settings.translation_engine,
        fallback_engine=settings.fallback_engine,
    )


async def build_services(
    settings: Settings,
    client: httpx.AsyncClient,
    credentials: CredentialStore | None = None,
) -> Services:
    registry = ProviderRegistry(
        client,
        credentials or SettingsCredentialStore(settings),
        configs={engine: settings.provider_config(engine) for engine in EngineType},
    )
    await registry.register_builtin_providers()

    extraction = TextExtractionEngine(create_vision_backend(settings, client))
    orchestrator = TranslationOrchestrator(registry, settings.scene_bindings)
    renderer = OverlayRenderer(
        OverlayStyle(mode=OverlayMode(settings.overlay_mode), mask=MaskMode(settings.overlay_mask))
    )
    flow = FlowController(extraction, orchestrator, renderer, default_options(settings))

    return Services(
        settings=settings,
        client=client,
        registry=registry,
        extraction=extraction,
        orchestrator=orchestrator,
        renderer=renderer,
        flow=flow,
    )
