"""번역 흐름 제어

analyzing → translating → rendering → completed 순서로 실행하는 상태 머신.
한 번에 하나의 흐름만 실행하며, 새 흐름을 시작하면 이전 흐름은 취소된다.
취소는 각 단계 경계에서 확인하며, 취소된 흐름의 결과는 공개하지 않는다.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Protocol, TypeVar

from PIL import Image
from pydantic import BaseModel, ConfigDict

from screentranslate.constants import Progress
from screentranslate.schemas.engine import EngineType
from screentranslate.schemas.pipeline import BilingualSegment, ScreenAnalysisResult, TextSegment
from screentranslate.services.rendering import OverlayStyle

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FlowPhase(StrEnum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    TRANSLATING = "translating"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def progress(self) -> float:
        return _PROGRESS[self]

    @property
    def is_processing(self) -> bool:
        return self in (FlowPhase.ANALYZING, FlowPhase.TRANSLATING, FlowPhase.RENDERING)


_PROGRESS: dict[FlowPhase, float] = {
    FlowPhase.IDLE: Progress.IDLE,
    FlowPhase.ANALYZING: Progress.ANALYZING,
    FlowPhase.TRANSLATING: Progress.TRANSLATING,
    FlowPhase.RENDERING: Progress.RENDERING,
    FlowPhase.COMPLETED: Progress.COMPLETED,
    FlowPhase.FAILED: Progress.FAILED,
}


class FlowErrorKind(StrEnum):
    ANALYSIS_FAILURE = "analysis_failure"
    TRANSLATION_FAILURE = "translation_failure"
    RENDERING_FAILURE = "rendering_failure"
    NO_TEXT_FOUND = "no_text_found"
    CANCELLED = "cancelled"


_DESCRIPTIONS: dict[FlowErrorKind, str] = {
    FlowErrorKind.ANALYSIS_FAILURE: "텍스트 추출 실패",
    FlowErrorKind.TRANSLATION_FAILURE: "번역 실패",
    FlowErrorKind.RENDERING_FAILURE: "오버레이 렌더링 실패",
    FlowErrorKind.NO_TEXT_FOUND: "이미지에서 텍스트를 찾지 못했습니다",
    FlowErrorKind.CANCELLED: "번역이 취소되었습니다",
}

_RECOVERY: dict[FlowErrorKind, str | None] = {
    FlowErrorKind.ANALYSIS_FAILURE: "비전 모델 설정과 네트워크 연결을 확인한 뒤 다시 시도하세요.",
    FlowErrorKind.TRANSLATION_FAILURE: "번역 엔진 설정을 확인하거나 다른 엔진을 선택하세요.",
    FlowErrorKind.RENDERING_FAILURE: "다시 시도하세요. 계속 실패하면 더 작은 영역을 선택하세요.",
    FlowErrorKind.NO_TEXT_FOUND: "텍스트가 포함된 영역을 선택하세요.",
    FlowErrorKind.CANCELLED: None,
}


class FlowError(Exception):
    """단계별 흐름 오류 (원인 예외는 __cause__로 연결)"""

    def __init__(self, kind: FlowErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message
        super().__init__(self.description)

    @property
    def description(self) -> str:
        base = _DESCRIPTIONS[self.kind]
        return f"{base}: {self.message}" if self.message else base

    @property
    def recovery_suggestion(self) -> str | None:
        return _RECOVERY[self.kind]


class FlowState(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    phase: FlowPhase = FlowPhase.IDLE
    error: FlowError | None = None

    @property
    def progress(self) -> float:
        return self.phase.progress


class FlowResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    original_image: Image.Image
    rendered_image: Image.Image
    segments: list[BilingualSegment]
    processing_time: float  # 초


class FlowOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_language: str
    source_language: str | None = None
    engine: EngineType
    fallback_engine: EngineType | None = None
    style: OverlayStyle | None = None


class TextExtractor(Protocol):
    async def analyze(self, image: Image.Image) -> ScreenAnalysisResult: ...


class SegmentTranslator(Protocol):
    async def translate(
        self,
        segments: list[TextSegment],
        target_language: str,
        preferred_engine: EngineType,
        source_language: str | None = None,
        fallback_engine: EngineType | None = None,
    ) -> list[BilingualSegment]: ...


class OverlayComposer(Protocol):
    def render(
        self,
        image: Image.Image,
        segments: list[BilingualSegment],
        style: OverlayStyle | None = None,
    ) -> Image.Image | None: ...


class CancellationToken:
    """흐름별 협력적 취소 플래그"""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise FlowError(FlowErrorKind.CANCELLED)


Listener = Callable[[FlowState], None]


class FlowController:
    """번역 흐름 상태 머신

    상태 변경은 현재 흐름(가장 최근 start)만 공개할 수 있다.
    이벤트 루프 하나에서 사용하는 것을 전제로 한다.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        translator: SegmentTranslator,
        renderer: OverlayComposer,
        options: FlowOptions,
    ) -> None:
        self._extractor = extractor
        self._translator = translator
        self._renderer = renderer
        self._options = options
        self._state = FlowState()
        self._token: CancellationToken | None = None
        self._task: asyncio.Task[FlowResult] | None = None
        self._last_result: FlowResult | None = None
        self._listeners: list[Listener] = []

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def options(self) -> FlowOptions:
        return self._options

    @property
    def last_result(self) -> FlowResult | None:
        return self._last_result

    @property
    def last_error(self) -> FlowError | None:
        return self._state.error

    @property
    def is_processing(self) -> bool:
        return self._state.phase.is_processing

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """상태 변경 구독. 반환된 함수를 호출하면 구독 해제."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def start(
        self, image: Image.Image, options: FlowOptions | None = None
    ) -> asyncio.Task[FlowResult]:
        """새 흐름 시작

        실행 중인 흐름은 FAILED를 공개하지 않고 취소되며, 상태는 곧바로 ANALYZING이 된다.
        """
        if self._token is not None:
            if self.is_processing:
                logger.info(f"실행 중인 번역 흐름 교체 ({self._state.phase})")
            self._token.cancel()

        token = CancellationToken()
        self._token = token
        self._last_result = None
        self._set_state(FlowState(phase=FlowPhase.ANALYZING))

        task = asyncio.create_task(self._perform(image, options or self._options, token))
        task.add_done_callback(self._on_done)
        self._task = task
        return task

    async def run(self, image: Image.Image, options: FlowOptions | None = None) -> FlowResult:
        """흐름을 시작하고 완료까지 대기

        Raises:
            FlowError: 단계 실패, 텍스트 없음, 취소
        """
        return await self.start(image, options)

    def cancel(self) -> None:
        if self._token is None:
            return

        self._token.cancel()
        self._token = None
        if self._state.phase.is_processing:
            logger.info(f"번역 흐름 취소 ({self._state.phase})")
            cancelled = FlowError(FlowErrorKind.CANCELLED)
            self._set_state(FlowState(phase=FlowPhase.FAILED, error=cancelled))

    def reset(self) -> None:
        self.cancel()
        self._last_result = None
        self._set_state(FlowState())

    async def _perform(
        self, image: Image.Image, options: FlowOptions, token: CancellationToken
    ) -> FlowResult:
        started = time.perf_counter()
        try:
            token.raise_if_cancelled()
            analysis = await self._run_phase(
                FlowErrorKind.ANALYSIS_FAILURE, self._extractor.analyze(image)
            )
            logger.info(f"분석 완료: {analysis.count}개 세그먼트")

            token.raise_if_cancelled()
            if not analysis.has_results:
                raise FlowError(FlowErrorKind.NO_TEXT_FOUND)

            self._publish(token, FlowState(phase=FlowPhase.TRANSLATING))
            segments = await self._run_phase(
                FlowErrorKind.TRANSLATION_FAILURE,
                self._translator.translate(
                    analysis.segments,
                    options.target_language,
                    options.engine,
                    source_language=options.source_language,
                    fallback_engine=options.fallback_engine,
                ),
            )

            token.raise_if_cancelled()
            self._publish(token, FlowState(phase=FlowPhase.RENDERING))
            rendered = await self._run_phase(
                FlowErrorKind.RENDERING_FAILURE,
                asyncio.to_thread(self._renderer.render, image, segments, options.style),
            )

            token.raise_if_cancelled()
            if rendered is None:
                raise FlowError(
                    FlowErrorKind.RENDERING_FAILURE, "오버레이 이미지를 생성하지 못했습니다"
                )
        except FlowError as e:
            logger.warning(f"번역 흐름 실패: {e}")
            self._publish(token, FlowState(phase=FlowPhase.FAILED, error=e))
            raise
        except asyncio.CancelledError:
            self._publish(
                token, FlowState(phase=FlowPhase.FAILED, error=FlowError(FlowErrorKind.CANCELLED))
            )
            raise

        result = FlowResult(
            original_image=image,
            rendered_image=rendered,
            segments=segments,
            processing_time=time.perf_counter() - started,
        )
        if token is self._token:
            self._last_result = result
        self._publish(token, FlowState(phase=FlowPhase.COMPLETED))
        logger.info(f"번역 흐름 완료: {len(segments)}개 세그먼트, {result.processing_time:.2f}s")
        return result

    async def _run_phase(self, kind: FlowErrorKind, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except FlowError:
            raise
        except Exception as e:
            raise FlowError(kind, str(e)) from e

    def _publish(self, token: CancellationToken, state: FlowState) -> None:
        if token is not self._token:
            return
        self._set_state(state)

    def _set_state(self, state: FlowState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("상태 리스너 오류")

    def _on_done(self, task: asyncio.Task[FlowResult]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, FlowError):
            logger.error(f"번역 흐름 예기치 않은 오류: {error!r}")
