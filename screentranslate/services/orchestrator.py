"""번역 오케스트레이션

TextSegment 리스트를 선택된 엔진으로 일괄 번역하고 BilingualSegment로 묶는다.

엔진 선택 방식 (EngineSelectionMode):
- primary_fallback: 우선 엔진이 실패하면 fallback 엔진으로 한 번만 재시도
- parallel: 여러 엔진을 동시에 실행하고 엔진별 결과/소요 시간을 모두 반환
- quick_switch: 우선 엔진만 실행하고 다른 엔진은 switch_engine()으로 요청 시 실행
- scene_binding: 번역 상황(TranslationScene)에 묶인 엔진과 프롬프트 사용
"""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence

from screentranslate.schemas.engine import (
    EngineSelectionMode,
    EngineType,
    SceneBinding,
    TranslationScene,
)
from screentranslate.schemas.pipeline import (
    BilingualSegment,
    EngineResult,
    TextSegment,
    TranslationResultBundle,
)
from screentranslate.services.translation.base import (
    TranslationFailedError,
    TranslationProvider,
    TranslationProviderError,
)
from screentranslate.services.translation.prompting import INSERT_PROMPT
from screentranslate.services.translation.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class AllEnginesFailedError(TranslationProviderError):
    """우선 엔진과 fallback 엔진이 모두 실패"""

    def __init__(self, errors: dict[EngineType, TranslationProviderError]) -> None:
        self.errors = errors
        detail = ", ".join(f"{engine}: {error}" for engine, error in errors.items())
        super().__init__(f"모든 번역 엔진 실패 ({detail})")


class TranslationOrchestrator:
    def __init__(
        self,
        registry: ProviderRegistry,
        scene_bindings: Mapping[TranslationScene, SceneBinding] | None = None,
    ) -> None:
        self._registry = registry
        self._scene_bindings = dict(scene_bindings or {})

    def binding_for(self, scene: TranslationScene) -> SceneBinding:
        """설정된 바인딩이 없으면 기본 바인딩 (local → mtran)"""
        return self._scene_bindings.get(scene) or SceneBinding()

    async def translate(
        self,
        segments: list[TextSegment],
        target_language: str,
        preferred_engine: EngineType,
        source_language: str | None = None,
        fallback_engine: EngineType | None = None,
    ) -> list[BilingualSegment]:
        """세그먼트 일괄 번역

        Returns:
            입력과 같은 순서, 같은 개수의 BilingualSegment

        Raises:
            TranslationProviderError: fallback이 없을 때 우선 엔진의 오류
            AllEnginesFailedError: 우선 엔진과 fallback 엔진이 모두 실패
        """
        if not segments:
            return []

        bundle = await self._translate_with_fallback(
            segments,
            target_language,
            preferred_engine,
            source_language,
            fallback_engine,
            EngineSelectionMode.PRIMARY_WITH_FALLBACK,
            scene=None,
        )
        return bundle.primary_result

    async def translate_bundle(
        self,
        segments: list[TextSegment],
        target_language: str,
        mode: EngineSelectionMode,
        preferred_engine: EngineType,
        source_language: str | None = None,
        fallback_engine: EngineType | None = None,
        parallel_engines: Sequence[EngineType] = (),
        scene: TranslationScene | None = None,
    ) -> TranslationResultBundle:
        """선택 방식에 따라 번역하고 시도한 엔진별 결과를 묶어서 반환

        parallel 모드는 엔진이 모두 실패해도 예외 없이 bundle을 반환한다 (all_failed로 확인).

        Raises:
            TranslationProviderError: primary_fallback/quick_switch/scene_binding 모드의 엔진 오류
            AllEnginesFailedError: 우선 엔진과 fallback 엔진이 모두 실패
        """
        if not segments:
            return TranslationResultBundle(
                primary_engine=preferred_engine, selection_mode=mode, scene=scene
            )

        match mode:
            case EngineSelectionMode.PRIMARY_WITH_FALLBACK:
                return await self._translate_with_fallback(
                    segments,
                    target_language,
                    preferred_engine,
                    source_language,
                    fallback_engine,
                    mode,
                    scene,
                )
            case EngineSelectionMode.PARALLEL:
                engines = list(dict.fromkeys(parallel_engines)) or [preferred_engine]
                results = await asyncio.gather(
                    *(
                        self._run_captured(
                            engine, segments, source_language, target_language, scene
                        )
                        for engine in engines
                    )
                )
                logger.info(
                    f"병렬 번역 완료: 성공 {sum(r.is_success for r in results)}/{len(results)}개 엔진"
                )
                return TranslationResultBundle(
                    results=list(results),
                    primary_engine=engines[0],
                    selection_mode=mode,
                    scene=scene,
                )
            case EngineSelectionMode.QUICK_SWITCH:
                result = await self._run(
                    preferred_engine, segments, source_language, target_language, scene
                )
                return TranslationResultBundle(
                    results=[result],
                    primary_engine=preferred_engine,
                    selection_mode=mode,
                    scene=scene,
                )
            case EngineSelectionMode.SCENE_BINDING:
                scene = scene or TranslationScene.SCREENSHOT
                binding = self.binding_for(scene)
                return await self._translate_with_fallback(
                    segments,
                    target_language,
                    binding.primary_engine,
                    source_language,
                    binding.effective_fallback,
                    mode,
                    scene,
                )

    async def switch_engine(
        self,
        bundle: TranslationResultBundle,
        segments: list[TextSegment],
        engine: EngineType,
        target_language: str,
        source_language: str | None = None,
    ) -> TranslationResultBundle:
        """표시 엔진 전환

        이미 성공한 결과가 있으면 재사용하고, 없으면 그 엔진으로 번역해 결과를 추가한다.
        """
        existing = bundle.result_for(engine)
        if existing is not None and existing.is_success:
            return bundle.model_copy(update={"primary_engine": engine})

        result = await self._run(engine, segments, source_language, target_language, bundle.scene)
        return bundle.model_copy(
            update={"results": [*bundle.results, result], "primary_engine": engine}
        )

    async def test_connection(self, engine: EngineType) -> bool:
        provider = await self._resolve(engine)
        return await provider.check_connection()

    async def _translate_with_fallback(
        self,
        segments: list[TextSegment],
        target_language: str,
        preferred_engine: EngineType,
        source_language: str | None,
        fallback_engine: EngineType | None,
        mode: EngineSelectionMode,
        scene: TranslationScene | None,
    ) -> TranslationResultBundle:
        started = time.perf_counter()
        try:
            result = await self._run(
                preferred_engine, segments, source_language, target_language, scene
            )
            return TranslationResultBundle(
                results=[result],
                primary_engine=preferred_engine,
                selection_mode=mode,
                scene=scene,
            )
        except TranslationProviderError as e:
            if fallback_engine is None or fallback_engine == preferred_engine:
                raise
            logger.warning(f"{preferred_engine} 번역 실패, {fallback_engine}로 재시도: {e}")
            primary_error = e
            failed = EngineResult(
                engine=preferred_engine, latency=time.perf_counter() - started, error=str(e)
            )

        try:
            result = await self._run(
                fallback_engine, segments, source_language, target_language, scene
            )
        except TranslationProviderError as e:
            raise AllEnginesFailedError(
                {preferred_engine: primary_error, fallback_engine: e}
            ) from e

        return TranslationResultBundle(
            results=[failed, result],
            primary_engine=fallback_engine,
            selection_mode=mode,
            scene=scene,
        )

    async def _run(
        self,
        engine: EngineType,
        segments: list[TextSegment],
        source_language: str | None,
        target_language: str,
        scene: TranslationScene | None,
    ) -> EngineResult:
        started = time.perf_counter()
        provider = await self._provider_for(engine, scene)
        translated = await self._translate_with(
            provider, segments, source_language, target_language
        )
        return EngineResult(
            engine=engine, segments=translated, latency=time.perf_counter() - started
        )

    async def _run_captured(
        self,
        engine: EngineType,
        segments: list[TextSegment],
        source_language: str | None,
        target_language: str,
        scene: TranslationScene | None,
    ) -> EngineResult:
        started = time.perf_counter()
        try:
            return await self._run(engine, segments, source_language, target_language, scene)
        except TranslationProviderError as e:
            logger.warning(f"{engine} 번역 실패: {e}")
            return EngineResult(engine=engine, latency=time.perf_counter() - started, error=str(e))

    async def _resolve(self, engine: EngineType) -> TranslationProvider:
        provider = await self._registry.provider(engine)
        if provider is None:
            provider = await self._registry.create_provider(engine)
        return provider

    async def _provider_for(
        self, engine: EngineType, scene: TranslationScene | None
    ) -> TranslationProvider:
        """상황별 프롬프트가 있으면 그 프롬프트를 쓰는 일회성 provider, 없으면 등록된 provider

        프롬프트 우선순위: 상황별 > 엔진별 > (translate_and_insert 기본 프롬프트) > 기본 프롬프트
        """
        if scene is None or not engine.uses_prompt:
            return await self._resolve(engine)

        config = self._registry.config_for(engine)
        binding = self._scene_bindings.get(scene)
        if binding is not None and binding.prompt_template:
            template = binding.prompt_template
        elif scene == TranslationScene.TRANSLATE_AND_INSERT and not config.prompt_template:
            template = INSERT_PROMPT
        else:
            return await self._resolve(engine)

        return self._registry.build_provider(
            engine, config.model_copy(update={"prompt_template": template})
        )

    async def _translate_with(
        self,
        provider: TranslationProvider,
        segments: list[TextSegment],
        source_language: str | None,
        target_language: str,
    ) -> list[BilingualSegment]:
        texts = [s.text for s in segments]
        try:
            results = await provider.translate_batch(texts, source_language, target_language)
        except TranslationProviderError:
            raise
        except Exception as e:
            logger.exception(f"{provider.name} 예기치 않은 오류")
            raise TranslationFailedError(f"{provider.name} 예기치 않은 오류: {e}") from e

        if len(results) != len(segments):
            logger.error(
                f"{provider.name} 결과 개수 불일치: 요청 {len(segments)}개, 응답 {len(results)}개"
            )
            raise TranslationFailedError(
                f"{provider.name} 결과 개수 불일치 ({len(results)}/{len(segments)})"
            )

        logger.info(f"번역 완료 ({provider.name}): {len(results)}개 세그먼트")
        return [
            BilingualSegment.from_pair(segment, result)
            for segment, result in zip(segments, results, strict=True)
        ]
