import math

import pytest
from pydantic import ValidationError

from screentranslate.schemas.engine import EngineSelectionMode, EngineType
from screentranslate.schemas.pipeline import (
    BilingualSegment,
    EngineResult,
    NormalizedBBox,
    ScreenAnalysisResult,
    TextSegment,
    TranslationResult,
    TranslationResultBundle,
)
from tests.conftest import make_bilingual, make_segment


class TestNormalizedBBox:
    def test_swapped_corners_are_ordered(self) -> None:
        bbox = NormalizedBBox(x1=0.5, y1=0.6, x2=0.1, y2=0.2)
        assert bbox.to_list() == [0.1, 0.2, 0.5, 0.6]

    def test_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            NormalizedBBox(x1=0.1, y1=0.1, x2=1.2, y2=0.5)

    def test_clamped(self) -> None:
        bbox = NormalizedBBox.clamped([-0.2, 0.1, 1.5, 0.4])
        assert bbox.to_list() == [0.0, 0.1, 1.0, 0.4]

    def test_clamped_rejects_wrong_length(self) -> None:
        with pytest.raises(ValueError, match="4 coordinates"):
            NormalizedBBox.clamped([0.1, 0.2, 0.3])

    @pytest.mark.parametrize("bad", [math.nan, math.inf])
    def test_clamped_rejects_nan_inf(self, bad: float) -> None:
        with pytest.raises(ValueError, match="NaN or Inf"):
            NormalizedBBox.clamped([0.1, bad, 0.3, 0.4])

    def test_to_pixels(self) -> None:
        bbox = NormalizedBBox(x1=0.1, y1=0.25, x2=0.5, y2=0.75)
        assert bbox.to_pixels(200, 100) == (20, 25, 100, 75)

    def test_geometry(self) -> None:
        bbox = NormalizedBBox(x1=0.2, y1=0.2, x2=0.6, y2=0.4)
        assert bbox.width == pytest.approx(0.4)
        assert bbox.height == pytest.approx(0.2)
        assert bbox.center == pytest.approx((0.4, 0.3))
        assert bbox.is_valid()

    def test_zero_area_invalid(self) -> None:
        assert not NormalizedBBox(x1=0.3, y1=0.1, x2=0.3, y2=0.5).is_valid()

    def test_intersects(self) -> None:
        a = NormalizedBBox(x1=0.0, y1=0.0, x2=0.5, y2=0.5)
        b = NormalizedBBox(x1=0.4, y1=0.4, x2=0.9, y2=0.9)
        c = NormalizedBBox(x1=0.6, y1=0.6, x2=0.9, y2=0.9)
        assert a.intersects(b)
        assert not a.intersects(c)


class TestTextSegment:
    def test_ids_are_unique(self) -> None:
        assert make_segment("a").id != make_segment("a").id

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            make_segment("a", confidence=1.5)

    def test_high_confidence_threshold(self) -> None:
        assert make_segment("a", confidence=0.71).is_high_confidence
        assert not make_segment("a", confidence=0.7).is_high_confidence

    def test_frozen(self) -> None:
        segment = make_segment("a")
        with pytest.raises(ValidationError):
            segment.text = "b"  # type: ignore[misc]


class TestScreenAnalysisResult:
    def _result(self) -> ScreenAnalysisResult:
        return ScreenAnalysisResult(
            segments=[
                make_segment("bottom", (0.1, 0.8, 0.4, 0.9), confidence=0.95),
                make_segment("top", (0.1, 0.1, 0.4, 0.2), confidence=0.5),
            ],
            image_width=100,
            image_height=100,
        )

    def test_full_text_is_top_to_bottom(self) -> None:
        assert self._result().full_text == "top\nbottom"

    def test_filter(self) -> None:
        filtered = self._result().filter(minimum_confidence=0.9)
        assert [s.text for s in filtered.segments] == ["bottom"]

    def test_segments_in(self) -> None:
        region = NormalizedBBox(x1=0.0, y1=0.0, x2=1.0, y2=0.5)
        assert [s.text for s in self._result().segments_in(region)] == ["top"]

    def test_empty(self) -> None:
        result = ScreenAnalysisResult.empty(10, 20)
        assert result.count == 0
        assert not result.has_results


class TestBilingualSegment:
    def test_from_pair(self) -> None:
        segment = make_segment("Hello")
        result = TranslationResult(
            source_text="Hello", translated_text="안녕하세요", source_language="en", target_language="ko"
        )
        bilingual = BilingualSegment.from_pair(segment, result)

        assert bilingual.original is segment
        assert bilingual.translated == "안녕하세요"
        assert bilingual.source_text == "Hello"
        assert bilingual.bbox == segment.bbox
        assert bilingual.target_language == "ko"

    def test_has_changes(self) -> None:
        same = TranslationResult(source_text="OK", translated_text="OK", target_language="ko")
        assert not same.has_changes


class TestTranslationResultBundle:
    def setup_method(self) -> None:
        self.bundle = TranslationResultBundle(
            results=[
                EngineResult(engine=EngineType.DEEPL, latency=0.5, error="연결 실패: down"),
                EngineResult(
                    engine=EngineType.OPENAI,
                    segments=[make_bilingual("Hello", "안녕")],
                    latency=1.0,
                ),
                EngineResult(
                    engine=EngineType.CLAUDE,
                    segments=[make_bilingual("Hello", "안녕하세요")],
                    latency=3.0,
                ),
            ],
            primary_engine=EngineType.OPENAI,
            selection_mode=EngineSelectionMode.PARALLEL,
        )

    def test_primary_result(self) -> None:
        assert [s.translated for s in self.bundle.primary_result] == ["안녕"]

    def test_engine_summaries(self) -> None:
        assert self.bundle.successful_engines == [EngineType.OPENAI, EngineType.CLAUDE]
        assert self.bundle.failed_engines == [EngineType.DEEPL]
        assert self.bundle.has_errors
        assert not self.bundle.all_failed
        assert self.bundle.average_latency == 2.0

    def test_failed_primary_has_no_result(self) -> None:
        bundle = self.bundle.model_copy(update={"primary_engine": EngineType.DEEPL})
        assert bundle.primary_result == []

    def test_result_for_missing_engine(self) -> None:
        assert self.bundle.result_for(EngineType.LOCAL) is None
