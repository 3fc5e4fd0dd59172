import asyncio
import json
from collections.abc import Callable, Iterator
from io import BytesIO
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from screentranslate.config import Settings
from screentranslate.container import Services, default_options
from screentranslate.infra.credentials import MemoryCredentialStore
from screentranslate.main import app
from screentranslate.schemas.engine import EngineType, StoredCredentials
from screentranslate.schemas.pipeline import (
    BilingualSegment,
    NormalizedBBox,
    TextSegment,
    TranslationResult,
)
from screentranslate.services.extraction import TextExtractionEngine
from screentranslate.services.flow import FlowController
from screentranslate.services.orchestrator import TranslationOrchestrator
from screentranslate.services.rendering import OverlayRenderer
from screentranslate.services.translation import ProviderRegistry

Handler = Callable[[httpx.Request], httpx.Response]


def make_test_image(width: int = 400, height: int = 300, color: str = "white") -> Image.Image:
    """테스트용 PIL 이미지 생성"""
    return Image.new("RGB", (width, height), color=color)


def make_test_image_bytes(width: int = 400, height: int = 300, fmt: str = "PNG") -> BytesIO:
    """테스트용 실제 이미지 바이트 생성"""
    buf = BytesIO()
    make_test_image(width, height).save(buf, format=fmt)
    buf.seek(0)
    return buf


def make_segment(
    text: str,
    bbox: tuple[float, float, float, float] = (0.1, 0.1, 0.5, 0.2),
    confidence: float = 0.9,
) -> TextSegment:
    x1, y1, x2, y2 = bbox
    return TextSegment(
        text=text, bbox=NormalizedBBox(x1=x1, y1=y1, x2=x2, y2=y2), confidence=confidence
    )


def make_bilingual(
    text: str,
    translated: str,
    bbox: tuple[float, float, float, float] = (0.1, 0.1, 0.5, 0.2),
) -> BilingualSegment:
    return BilingualSegment(
        original=make_segment(text, bbox), translated=translated, target_language="ko"
    )


def mock_client(handler: Handler) -> httpx.AsyncClient:
    """MockTransport 기반 AsyncClient"""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_response(data: Any, status_code: int = 200, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data), **kwargs)


class RecordingHandler:
    """요청을 기록하고 순서대로 응답을 돌려주는 MockTransport handler"""

    def __init__(self, *responses: httpx.Response) -> None:
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]

    def body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


@pytest.fixture
def credentials() -> MemoryCredentialStore:
    """주요 엔진 자격 증명이 등록된 저장소"""
    return MemoryCredentialStore(
        {
            EngineType.OPENAI: StoredCredentials(api_key="sk-openai"),
            EngineType.CLAUDE: StoredCredentials(api_key="sk-claude"),
            EngineType.GEMINI: StoredCredentials(api_key="gemini-key"),
            EngineType.GOOGLE: StoredCredentials(api_key="google-key"),
            EngineType.DEEPL: StoredCredentials(api_key="deepl-key"),
            EngineType.BAIDU: StoredCredentials(api_key="baidu-secret", app_id="2015063000000001"),
        }
    )


@pytest.fixture
def empty_credentials() -> MemoryCredentialStore:
    return MemoryCredentialStore()


class FakeLocalEngine:
    """LocalEngine 대역 (기본 동작: 입력 끝에 "!"를 붙여 반환)"""

    def __init__(
        self, outputs: list[str] | None = None, error: Exception | None = None, ready: bool = True
    ) -> None:
        self.outputs = outputs
        self.error = error
        self.ready = ready
        self.calls: list[tuple[list[str], str | None, str]] = []

    def is_ready(self) -> bool:
        return self.ready

    def translate(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[str]:
        self.calls.append((texts, source_language, target_language))
        if self.error is not None:
            raise self.error
        return self.outputs if self.outputs is not None else [f"{t}!" for t in texts]


SEGMENTS_JSON = json.dumps(
    {
        "segments": [
            {"text": "Settings", "bbox": [0.1, 0.1, 0.4, 0.2], "confidence": 0.95},
            {"text": "Cancel", "bbox": [0.1, 0.5, 0.3, 0.6], "confidence": 0.9},
        ]
    }
)


class StaticVisionBackend:
    """고정 응답을 돌려주는 VisionBackend"""

    name = "static"

    def __init__(self, content: str = SEGMENTS_JSON, error: Exception | None = None) -> None:
        self.content = content
        self.error = error

    async def complete(
        self, image_b64: str, mime_type: str, system_prompt: str, user_prompt: str
    ) -> str:
        if self.error is not None:
            raise self.error
        return self.content


class PrefixProvider:
    """번역문 앞에 "[engine]"을 붙이는 provider"""

    def __init__(self, engine: EngineType) -> None:
        self.id = engine.value
        self.name = engine.display_name

    async def is_available(self) -> bool:
        return True

    async def translate_batch(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[TranslationResult]:
        return [
            TranslationResult(
                source_text=t,
                translated_text=f"[{self.id}] {t}",
                source_language=source_language,
                target_language=target_language,
            )
            for t in texts
        ]

    async def check_connection(self) -> bool:
        return True


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def vision_backend() -> StaticVisionBackend:
    return StaticVisionBackend()


@pytest.fixture
def services(vision_backend: StaticVisionBackend) -> Services:
    """외부 호출 없이 동작하는 서비스 구성 (openai 엔진은 PrefixProvider)"""
    settings = Settings(_env_file=None, translation_engine=EngineType.OPENAI)  # type: ignore[call-arg]
    http_client = mock_client(_refuse)
    registry = ProviderRegistry(http_client, MemoryCredentialStore(), local_engine=FakeLocalEngine())

    async def _setup() -> None:
        await registry.register(EngineType.OPENAI, PrefixProvider(EngineType.OPENAI))  # type: ignore[arg-type]
        await registry.create_provider(EngineType.LOCAL)

    asyncio.run(_setup())

    extraction = TextExtractionEngine(vision_backend)
    orchestrator = TranslationOrchestrator(registry)
    renderer = OverlayRenderer()
    return Services(
        settings=settings,
        client=http_client,
        registry=registry,
        extraction=extraction,
        orchestrator=orchestrator,
        renderer=renderer,
        flow=FlowController(extraction, orchestrator, renderer, default_options(settings)),
    )


@pytest.fixture
def client(services: Services) -> Iterator[TestClient]:
    """lifespan 없이 app.state에 테스트용 서비스를 주입한 TestClient"""
    app.state.services = services
    yield TestClient(app)
    del app.state.services
