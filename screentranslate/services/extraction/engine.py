"""비전 모델 기반 텍스트 추출

이미지 → VisionBackend → JSON 파싱 → 정규화 좌표 TextSegment 리스트.

좌표 정책: 범위를 벗어난 좌표는 [0, 1]로 클램핑하고,
클램핑 후 면적이 0이거나 텍스트가 비어 있는 세그먼트는 버린다.
"""

import asyncio
import base64
import io
import json
import logging
import re
from typing import Any

from PIL import Image

from screentranslate.constants import Confidence
from screentranslate.schemas.pipeline import NormalizedBBox, ScreenAnalysisResult, TextSegment
from screentranslate.services.extraction.base import AnalysisError, VisionBackend
from screentranslate.services.extraction.prompts import SYSTEM_PROMPT, USER_PROMPT

logger = logging.getLogger(__name__)

JPEG_QUALITY = 85
MIME_TYPE = "image/jpeg"

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def encode_image(image: Image.Image) -> str:
    """JPEG(base64)로 인코딩"""
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return base64.b64encode(buffer.getvalue()).decode()


def extract_json(content: str) -> str:
    """마크다운 코드 펜스나 앞뒤 설명을 제거하고 JSON 본문만 반환"""
    match = _FENCE_PATTERN.search(content)
    if match:
        return match.group(1)

    start, end = content.find("{"), content.rfind("}")
    if start != -1 and end > start:
        return content[start : end + 1]
    return content.strip()


def _parse_bbox(item: dict[str, Any]) -> NormalizedBBox:
    if "bbox" in item:
        coords = item["bbox"]
        if not isinstance(coords, list | tuple):
            raise ValueError(f"bbox must be a list, got {type(coords).__name__}")
        return NormalizedBBox.clamped(coords)

    box = item.get("boundingBox")
    if isinstance(box, dict):
        x, y = float(box["x"]), float(box["y"])
        return NormalizedBBox.clamped([x, y, x + float(box["width"]), y + float(box["height"])])

    raise ValueError("bbox 없음")


def _parse_segment(item: Any) -> TextSegment | None:
    if not isinstance(item, dict):
        logger.warning(f"세그먼트 형식 오류, 무시: {item!r}")
        return None

    raw = item.get("text")
    text = raw.strip() if isinstance(raw, str) else ""
    if not text:
        return None

    try:
        bbox = _parse_bbox(item)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"bbox 파싱 실패, 무시: {text!r} - {e}")
        return None

    if not bbox.is_valid():
        logger.warning(f"면적이 0인 bbox, 무시: {text!r}")
        return None

    try:
        confidence = float(item.get("confidence", Confidence.DEFAULT))
    except (TypeError, ValueError):
        confidence = Confidence.DEFAULT

    return TextSegment(text=text, bbox=bbox, confidence=min(1.0, max(0.0, confidence)))


def parse_segments(content: str) -> list[TextSegment]:
    """모델 응답 → TextSegment 리스트

    Raises:
        AnalysisError: JSON이 아니거나 segments 배열이 없는 경우
    """
    if not content.strip():
        raise AnalysisError("빈 응답")

    try:
        data = json.loads(extract_json(content))
    except json.JSONDecodeError as e:
        raise AnalysisError(f"JSON 파싱 실패: {e}") from e

    items = data.get("segments") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise AnalysisError(f"segments가 리스트가 아님: {type(items).__name__}")

    segments = [s for s in (_parse_segment(item) for item in items) if s is not None]
    if len(segments) < len(items):
        logger.info(f"유효하지 않은 세그먼트 {len(items) - len(segments)}개 제외")
    return segments


class TextExtractionEngine:
    """이미지에서 텍스트 세그먼트를 추출"""

    def __init__(self, backend: VisionBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> VisionBackend:
        return self._backend

    async def analyze(self, image: Image.Image) -> ScreenAnalysisResult:
        """이미지 분석

        Returns:
            ScreenAnalysisResult: 텍스트가 없으면 segments가 빈 결과

        Raises:
            AnalysisError: 모델 호출 실패, 응답 파싱 실패
        """
        width, height = image.size
        if width == 0 or height == 0:
            raise AnalysisError("유효하지 않은 이미지입니다")

        image_b64 = await asyncio.to_thread(encode_image, image)
        content = await self._backend.complete(image_b64, MIME_TYPE, SYSTEM_PROMPT, USER_PROMPT)
        segments = parse_segments(content)

        logger.info(f"텍스트 추출 완료 ({self._backend.name}): {len(segments)}개 세그먼트")
        return ScreenAnalysisResult(segments=segments, image_width=width, image_height=height)
