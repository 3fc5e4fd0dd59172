"""파이프라인 데이터 모델

Extraction → Translation → Rendering 전체에서 사용하는 공통 스키마.
좌표는 모두 이미지 크기 대비 정규화된 값 [0, 1].
"""

import math
import uuid
from collections.abc import Sequence
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from screentranslate.constants import Confidence
from screentranslate.schemas.engine import EngineSelectionMode, EngineType, TranslationScene


class NormalizedBBox(BaseModel):
    """정규화 바운딩 박스 [x1, y1, x2, y2]

    유효성:
    - x1 <= x2, y1 <= y2 보장 (자동 정렬)
    - 모든 좌표는 [0, 1] 범위 (벗어나면 ValidationError)

    모델 응답처럼 범위를 벗어날 수 있는 입력은 clamped()로 생성한다.
    """

    model_config = ConfigDict(frozen=True)

    x1: float
    y1: float
    x2: float
    y2: float

    @model_validator(mode="before")
    @classmethod
    def order_corners(cls, data: object) -> object:
        """역전된 좌표 자동 정렬"""
        if isinstance(data, dict) and {"x1", "y1", "x2", "y2"} <= data.keys():
            x1, x2 = sorted((data["x1"], data["x2"]))
            y1, y2 = sorted((data["y1"], data["y2"]))
            return {**data, "x1": x1, "y1": y1, "x2": x2, "y2": y2}
        return data

    @model_validator(mode="after")
    def validate_range(self) -> Self:
        for name in ("x1", "y1", "x2", "y2"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name}={value} is outside [0, 1]")
        return self

    @classmethod
    def clamped(cls, coords: Sequence[float]) -> "NormalizedBBox":
        """범위를 벗어난 좌표를 [0, 1]로 클램핑하여 생성

        Raises:
            ValueError: 좌표 개수가 4개가 아니거나 NaN/Inf가 포함된 경우
        """
        if len(coords) != 4:
            raise ValueError(f"BBox requires 4 coordinates, got {len(coords)}")

        values: list[float] = []
        for i, c in enumerate(coords):
            c = float(c)
            if math.isnan(c) or math.isinf(c):
                raise ValueError(f"Coordinate {i} is NaN or Inf")
            values.append(min(1.0, max(0.0, c)))

        return cls(x1=values[0], y1=values[1], x2=values[2], y2=values[3])

    def to_pixels(self, width: int, height: int) -> tuple[int, int, int, int]:
        """이미지 픽셀 좌표로 변환 (round로 반올림)"""
        return (
            round(self.x1 * width),
            round(self.y1 * height),
            round(self.x2 * width),
            round(self.y2 * height),
        )

    def to_list(self) -> list[float]:
        return [self.x1, self.y1, self.x2, self.y2]

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> tuple[float, float]:
        """중심점 (cx, cy)"""
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    def is_valid(self) -> bool:
        """유효한 영역인지 확인 (width > 0 and height > 0)"""
        return self.width > 0 and self.height > 0

    def intersects(self, other: "NormalizedBBox") -> bool:
        return self.x1 < other.x2 and other.x1 < self.x2 and self.y1 < other.y2 and other.y1 < self.y2


class TextSegment(BaseModel):
    """화면에서 추출한 텍스트 조각"""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    text: str
    bbox: NormalizedBBox
    confidence: float = Field(default=Confidence.DEFAULT, ge=0.0, le=1.0)

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence > Confidence.HIGH

    def pixel_bbox(self, width: int, height: int) -> tuple[int, int, int, int]:
        return self.bbox.to_pixels(width, height)


class ScreenAnalysisResult(BaseModel):
    """텍스트 추출 결과 (세그먼트 + 원본 이미지 크기)"""

    segments: list[TextSegment] = Field(default_factory=list)
    image_width: int
    image_height: int

    @classmethod
    def empty(cls, width: int, height: int) -> "ScreenAnalysisResult":
        return cls(segments=[], image_width=width, image_height=height)

    @property
    def count(self) -> int:
        return len(self.segments)

    @property
    def has_results(self) -> bool:
        return bool(self.segments)

    @property
    def full_text(self) -> str:
        """위→아래, 왼쪽→오른쪽 순서로 이어붙인 전체 텍스트"""
        ordered = sorted(self.segments, key=lambda s: (s.bbox.y1, s.bbox.x1))
        return "\n".join(s.text for s in ordered)

    def filter(self, minimum_confidence: float) -> "ScreenAnalysisResult":
        return self.model_copy(
            update={"segments": [s for s in self.segments if s.confidence >= minimum_confidence]}
        )

    def segments_in(self, bbox: NormalizedBBox) -> list[TextSegment]:
        return [s for s in self.segments if s.bbox.intersects(bbox)]


class TranslationResult(BaseModel):
    """단일 텍스트 번역 결과"""

    source_text: str
    translated_text: str
    source_language: str | None = None
    target_language: str

    @property
    def has_changes(self) -> bool:
        return self.source_text != self.translated_text


class BilingualSegment(BaseModel):
    """원문 세그먼트 + 번역문"""

    model_config = ConfigDict(frozen=True)

    original: TextSegment
    translated: str
    source_language: str | None = None
    target_language: str

    @classmethod
    def from_pair(cls, segment: TextSegment, result: TranslationResult) -> "BilingualSegment":
        return cls(
            original=segment,
            translated=result.translated_text,
            source_language=result.source_language,
            target_language=result.target_language,
        )

    @property
    def source_text(self) -> str:
        return self.original.text

    @property
    def bbox(self) -> NormalizedBBox:
        return self.original.bbox


class EngineResult(BaseModel):
    """엔진 하나의 번역 결과 (실패 시 error에 메시지)"""

    engine: EngineType
    segments: list[BilingualSegment] = Field(default_factory=list)
    latency: float = 0.0  # 초
    error: str | None = None

    @property
    def is_success(self) -> bool:
        return self.error is None and bool(self.segments)


class TranslationResultBundle(BaseModel):
    """한 번의 번역 요청에서 시도한 모든 엔진의 결과

    primary_engine은 화면에 보여줄 결과를 낸 엔진이다.
    """

    results: list[EngineResult] = Field(default_factory=list)
    primary_engine: EngineType
    selection_mode: EngineSelectionMode
    scene: TranslationScene | None = None

    @property
    def primary_result(self) -> list[BilingualSegment]:
        result = self.result_for(self.primary_engine)
        return result.segments if result is not None and result.is_success else []

    @property
    def has_errors(self) -> bool:
        return any(r.error is not None for r in self.results)

    @property
    def all_failed(self) -> bool:
        return all(not r.is_success for r in self.results)

    @property
    def successful_engines(self) -> list[EngineType]:
        return [r.engine for r in self.results if r.is_success]

    @property
    def failed_engines(self) -> list[EngineType]:
        return [r.engine for r in self.results if not r.is_success]

    @property
    def average_latency(self) -> float:
        """성공한 엔진의 평균 소요 시간 (성공이 없으면 0)"""
        latencies = [r.latency for r in self.results if r.is_success]
        return sum(latencies) / len(latencies) if latencies else 0.0

    def result_for(self, engine: EngineType) -> EngineResult | None:
        """엔진의 마지막 결과"""
        for result in reversed(self.results):
            if result.engine == engine:
                return result
        return None
