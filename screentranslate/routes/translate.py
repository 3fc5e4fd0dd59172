"""Translate API 라우트

업로드한 스크린샷을 추출 → 번역 → 오버레이 렌더링까지 한 번에 처리한다.
"""

import asyncio
import base64
import io
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import Field
from PIL import Image, UnidentifiedImageError

from screentranslate.container import Services
from screentranslate.routes.deps import get_services
from screentranslate.schemas.base import BaseSchema
from screentranslate.schemas.engine import EngineSelectionMode, EngineType, TranslationScene
from screentranslate.schemas.pipeline import (
    BilingualSegment,
    EngineResult,
    NormalizedBBox,
    TextSegment,
    TranslationResultBundle,
)
from screentranslate.services.flow import FlowError, FlowErrorKind, FlowOptions
from screentranslate.services.rendering import OverlayMode
from screentranslate.services.translation.base import EmptyInputError, TranslationProviderError

router = APIRouter(prefix="/translate", tags=["translate"])
logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[FlowErrorKind, int] = {
    FlowErrorKind.NO_TEXT_FOUND: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FlowErrorKind.ANALYSIS_FAILURE: status.HTTP_502_BAD_GATEWAY,
    FlowErrorKind.TRANSLATION_FAILURE: status.HTTP_502_BAD_GATEWAY,
    FlowErrorKind.RENDERING_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FlowErrorKind.CANCELLED: status.HTTP_409_CONFLICT,
}


class SegmentResponse(BaseSchema):
    id: str
    text: str
    translated: str
    bbox: list[float]
    confidence: float

    @classmethod
    def from_segment(cls, segment: BilingualSegment) -> "SegmentResponse":
        return cls(
            id=str(segment.original.id),
            text=segment.source_text,
            translated=segment.translated,
            bbox=segment.bbox.to_list(),
            confidence=segment.original.confidence,
        )


class TranslateResponse(BaseSchema):
    segments: list[SegmentResponse]
    image: str  # base64 PNG
    processing_time: float


def _load_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGB")
    return image


def _encode_png(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


@router.post("", response_model=TranslateResponse)
async def translate_image(
    services: Annotated[Services, Depends(get_services)],
    file: Annotated[UploadFile, File()],
    target_language: Annotated[str | None, Form()] = None,
    source_language: Annotated[str | None, Form()] = None,
    engine: Annotated[EngineType | None, Form()] = None,
    fallback_engine: Annotated[EngineType | None, Form()] = None,
    mode: Annotated[OverlayMode | None, Form()] = None,
) -> TranslateResponse:
    """스크린샷 번역 (세그먼트 + 오버레이 이미지)"""
    try:
        image = _load_image(await file.read())
    except (UnidentifiedImageError, OSError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_IMAGE", "message": "이미지를 읽을 수 없습니다"},
        ) from None

    defaults = services.flow.options
    style = services.renderer.style
    if mode is not None:
        style = style.model_copy(update={"mode": mode})

    options = FlowOptions(
        target_language=target_language or defaults.target_language,
        source_language=source_language or defaults.source_language,
        engine=engine or defaults.engine,
        fallback_engine=fallback_engine or defaults.fallback_engine,
        style=style,
    )

    try:
        result = await services.flow.run(image, options)
    except FlowError as e:
        logger.warning(f"번역 요청 실패: {e}")
        raise HTTPException(
            status_code=_ERROR_STATUS[e.kind],
            detail={
                "code": e.kind.upper(),
                "message": e.description,
                "recovery": e.recovery_suggestion,
            },
        ) from None

    encoded = await asyncio.to_thread(_encode_png, result.rendered_image)
    return TranslateResponse(
        segments=[SegmentResponse.from_segment(s) for s in result.segments],
        image=encoded,
        processing_time=result.processing_time,
    )


class TextTranslateRequest(BaseSchema):
    texts: list[str] = Field(min_length=1)
    target_language: str | None = None
    source_language: str | None = None
    selection_mode: EngineSelectionMode | None = None
    engine: EngineType | None = None
    fallback_engine: EngineType | None = None
    parallel_engines: list[EngineType] = Field(default_factory=list)
    scene: TranslationScene | None = None


class EngineResultResponse(BaseSchema):
    engine: EngineType
    translations: list[str]
    latency: float
    error: str | None

    @classmethod
    def from_result(cls, result: EngineResult) -> "EngineResultResponse":
        return cls(
            engine=result.engine,
            translations=[s.translated for s in result.segments],
            latency=result.latency,
            error=result.error,
        )


class TextTranslateResponse(BaseSchema):
    primary_engine: EngineType
    selection_mode: EngineSelectionMode
    scene: TranslationScene | None
    translations: list[str]
    results: list[EngineResultResponse]

    @classmethod
    def from_bundle(cls, bundle: TranslationResultBundle) -> "TextTranslateResponse":
        return cls(
            primary_engine=bundle.primary_engine,
            selection_mode=bundle.selection_mode,
            scene=bundle.scene,
            translations=[s.translated for s in bundle.primary_result],
            results=[EngineResultResponse.from_result(r) for r in bundle.results],
        )


_FULL_FRAME = NormalizedBBox(x1=0.0, y1=0.0, x2=1.0, y2=1.0)


@router.post("/text", response_model=TextTranslateResponse)
async def translate_text(
    services: Annotated[Services, Depends(get_services)],
    request: TextTranslateRequest,
) -> TextTranslateResponse:
    """텍스트 번역 (엔진 선택 방식별 결과 묶음)"""
    settings = services.settings
    segments = [TextSegment(text=t, bbox=_FULL_FRAME) for t in request.texts]

    try:
        bundle = await services.orchestrator.translate_bundle(
            segments,
            request.target_language or settings.target_language,
            request.selection_mode or settings.selection_mode,
            request.engine or settings.translation_engine,
            source_language=request.source_language or settings.source_language,
            fallback_engine=request.fallback_engine or settings.fallback_engine,
            parallel_engines=request.parallel_engines or settings.parallel_engines,
            scene=request.scene,
        )
    except EmptyInputError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "EMPTY_INPUT", "message": str(e)},
        ) from None
    except TranslationProviderError as e:
        logger.warning(f"텍스트 번역 실패: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "code": "TRANSLATION_FAILURE",
                "message": str(e),
                "recovery": e.recovery_suggestion,
            },
        ) from None

    return TextTranslateResponse.from_bundle(bundle)
