"""번역 오버레이 렌더링 서비스

원본 이미지 위에 번역문을 합성한다. 입력 이미지는 변경하지 않는다.

모드:
    - below: 원문 박스 아래에 번역문 (원문 유지)
    - replace: 원문 영역을 가리고 그 자리에 번역문
"""

import logging
import math
from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import cast

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont
from pydantic import BaseModel, ConfigDict, Field

from screentranslate.schemas.pipeline import BilingualSegment

logger = logging.getLogger(__name__)

FONT_PATHS = [
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/System/Library/Fonts/PingFang.ttc",
    "/System/Library/Fonts/Hiragino Sans GB.ttc",
    "C:/Windows/Fonts/msyh.ttc",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "C:/Windows/Fonts/arial.ttf",
]

MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 48
LINE_SPACING = 1.3
EDGE_SAMPLE = 3  # 배경색 추출 시 박스 바깥 테두리 두께(px)

RGB = tuple[int, int, int]
RGBA = tuple[int, int, int, int]
Rect = tuple[int, int, int, int]


class RenderingError(Exception):
    pass


class OverlayMode(StrEnum):
    BELOW = "below"
    REPLACE = "replace"


class MaskMode(StrEnum):
    SOLID = "solid"  # 가장자리 색으로 채우기
    INPAINT = "inpaint"  # OpenCV Telea inpainting


class OverlayStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: OverlayMode = OverlayMode.BELOW
    mask: MaskMode = MaskMode.SOLID
    font_size: int = Field(default=14, ge=MIN_FONT_SIZE, le=MAX_FONT_SIZE)
    text_color: RGB = (255, 255, 255)
    background_color: RGBA = (0, 0, 0, 191)
    extension_color: RGB = (32, 32, 32)  # 캔버스를 아래로 늘릴 때 채우는 색
    padding_x: int = 8
    padding_y: int = 4
    gap: int = 2
    corner_radius: int = 4

    @classmethod
    def default(cls) -> "OverlayStyle":
        return cls()

    @classmethod
    def dark(cls) -> "OverlayStyle":
        return cls(text_color=(255, 255, 255), background_color=(20, 20, 20, 230))

    @classmethod
    def minimal(cls) -> "OverlayStyle":
        return cls(
            font_size=12,
            text_color=(30, 30, 30),
            background_color=(255, 255, 255, 200),
            padding_x=4,
            padding_y=2,
            corner_radius=2,
        )


@lru_cache(maxsize=32)
def _get_font(size: int) -> ImageFont.FreeTypeFont:
    for font_path in FONT_PATHS:
        if Path(font_path).exists():
            try:
                return ImageFont.truetype(font_path, size)
            except OSError:
                continue
    return cast(ImageFont.FreeTypeFont, ImageFont.load_default(size=size))


def _text_width(text: str, font: ImageFont.FreeTypeFont, draw: ImageDraw.ImageDraw) -> float:
    bbox = draw.textbbox((0, 0), text, font=font)
    return bbox[2] - bbox[0]


def _force_wrap(
    text: str, width: float, font: ImageFont.FreeTypeFont, draw: ImageDraw.ImageDraw
) -> list[str]:
    """글자 단위 강제 줄바꿈 (공백 없는 CJK, 긴 단어)"""
    lines: list[str] = []
    current = ""

    for char in text:
        test = current + char
        if current and _text_width(test, font, draw) > width:
            lines.append(current)
            current = char
        else:
            current = test

    lines.append(current)
    return lines


def _wrap_text(
    text: str, width: float, font: ImageFont.FreeTypeFont, draw: ImageDraw.ImageDraw
) -> list[str]:
    """픽셀 너비 기준 단어 단위 줄바꿈"""
    lines: list[str] = []

    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if _text_width(candidate, font, draw) <= width:
                current = candidate
                continue

            if current:
                lines.append(current)
            pieces = _force_wrap(word, width, font, draw)
            lines.extend(pieces[:-1])
            current = pieces[-1]
        lines.append(current)

    return lines


def _measure_block(
    lines: list[str], font: ImageFont.FreeTypeFont, draw: ImageDraw.ImageDraw
) -> tuple[float, float]:
    """텍스트 블록의 너비와 높이"""
    size = getattr(font, "size", MIN_FONT_SIZE)
    height = len(lines) * size * LINE_SPACING
    width = max((_text_width(line, font, draw) for line in lines), default=0.0)
    return width, height


def _fit_text(
    text: str, width: int, height: int, max_size: int, draw: ImageDraw.ImageDraw
) -> tuple[ImageFont.FreeTypeFont, list[str]]:
    """박스에 맞는 최대 폰트와 줄바꿈된 텍스트 반환"""
    for size in range(max_size, MIN_FONT_SIZE - 1, -1):
        font = _get_font(size)
        lines = _wrap_text(text, width, font, draw)
        block_width, block_height = _measure_block(lines, font, draw)
        if block_width <= width and block_height <= height:
            return font, lines

    font = _get_font(MIN_FONT_SIZE)
    return font, _wrap_text(text, width, font, draw)


def _pixel_rect(segment: BilingualSegment, width: int, height: int) -> Rect:
    x1, y1, x2, y2 = segment.bbox.to_pixels(width, height)
    return x1, y1, max(x2, x1 + 1), max(y2, y1 + 1)


def _extract_bg_color(image: np.ndarray, rect: Rect) -> RGB:
    """박스 바로 바깥 테두리 픽셀의 중앙값 색"""
    h, w = image.shape[:2]
    x1, y1, x2, y2 = rect
    ox1, oy1 = max(0, x1 - EDGE_SAMPLE), max(0, y1 - EDGE_SAMPLE)
    ox2, oy2 = min(w, x2 + EDGE_SAMPLE), min(h, y2 + EDGE_SAMPLE)
    region = image[oy1:oy2, ox1:ox2]

    if region.size == 0:
        return (255, 255, 255)

    ring = np.ones(region.shape[:2], dtype=bool)
    ring[y1 - oy1 : y2 - oy1, x1 - ox1 : x2 - ox1] = False
    edges = region[ring] if ring.any() else region.reshape(-1, 3)

    color = np.median(edges, axis=0)
    return (int(color[0]), int(color[1]), int(color[2]))


def _mask_regions(rgb: np.ndarray, rects: list[Rect], mode: MaskMode) -> np.ndarray:
    """원문 영역 가리기"""
    result = rgb.copy()

    if mode == MaskMode.INPAINT:
        mask = np.zeros(rgb.shape[:2], dtype=np.uint8)
        for x1, y1, x2, y2 in rects:
            mask[y1:y2, x1:x2] = 255
        bgr = cv2.cvtColor(result, cv2.COLOR_RGB2BGR)
        cleaned = cv2.inpaint(bgr, mask, 3, cv2.INPAINT_TELEA)
        return cv2.cvtColor(cleaned, cv2.COLOR_BGR2RGB)

    for rect in rects:
        color = _extract_bg_color(rgb, rect)
        x1, y1, x2, y2 = rect
        cv2.rectangle(result, (x1, y1), (x2 - 1, y2 - 1), color, -1)
    return result


class OverlayRenderer:
    """번역 오버레이 합성 (순수 함수: 입력 이미지 불변)"""

    def __init__(self, style: OverlayStyle | None = None) -> None:
        self._style = style or OverlayStyle.default()

    @property
    def style(self) -> OverlayStyle:
        return self._style

    def render(
        self,
        image: Image.Image,
        segments: list[BilingualSegment],
        style: OverlayStyle | None = None,
    ) -> Image.Image | None:
        """번역 오버레이 이미지 생성

        Returns:
            합성된 새 이미지. 실패하면 None.
        """
        style = style or self._style
        try:
            if image.width == 0 or image.height == 0:
                raise RenderingError("유효하지 않은 이미지입니다")
            if not segments:
                return image.copy()

            if style.mode == OverlayMode.REPLACE:
                result = self._render_replace(image, segments, style)
            else:
                result = self._render_below(image, segments, style)
        except (RenderingError, OSError, ValueError, cv2.error) as e:
            logger.error(f"렌더링 실패: {e}")
            return None

        logger.info(f"렌더링 완료 ({style.mode}): {len(segments)}개 세그먼트")
        return result

    def _render_below(
        self, image: Image.Image, segments: list[BilingualSegment], style: OverlayStyle
    ) -> Image.Image:
        width, height = image.size
        font = _get_font(style.font_size)
        line_height = style.font_size * LINE_SPACING
        measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))

        blocks: list[tuple[Rect, list[str]]] = []
        for segment in segments:
            if not segment.translated.strip():
                continue
            x1, _, x2, y2 = _pixel_rect(segment, width, height)
            # 원문 박스보다 길면 오른쪽 가장자리까지 넓힘
            max_text_width = max(x2 - x1, width - x1 - 2 * style.padding_x, style.font_size)
            lines = _wrap_text(segment.translated, max_text_width, font, measure)
            block_width, block_height = _measure_block(lines, font, measure)

            top = y2 + style.gap
            rect = (
                x1,
                top,
                x1 + math.ceil(block_width) + 2 * style.padding_x,
                top + math.ceil(block_height) + 2 * style.padding_y,
            )
            blocks.append((rect, lines))

        bottom = max((rect[3] for rect, _ in blocks), default=height)
        canvas = Image.new("RGBA", (width, max(height, bottom)), (*style.extension_color, 255))
        canvas.paste(image.convert("RGBA"), (0, 0))

        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        for rect, lines in blocks:
            draw.rounded_rectangle(rect, radius=style.corner_radius, fill=style.background_color)
            for i, line in enumerate(lines):
                position = (rect[0] + style.padding_x, rect[1] + style.padding_y + i * line_height)
                draw.text(position, line, font=font, fill=style.text_color)

        return self._finish(image, Image.alpha_composite(canvas, overlay))

    def _render_replace(
        self, image: Image.Image, segments: list[BilingualSegment], style: OverlayStyle
    ) -> Image.Image:
        width, height = image.size
        rects = [_pixel_rect(s, width, height) for s in segments]

        masked = _mask_regions(np.array(image.convert("RGB")), rects, style.mask)
        base = Image.fromarray(masked).convert("RGBA")

        overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        for segment, rect in zip(segments, rects, strict=True):
            if not segment.translated.strip():
                continue
            self._draw_in_box(draw, segment.translated, rect, style)

        return self._finish(image, Image.alpha_composite(base, overlay))

    def _draw_in_box(
        self, draw: ImageDraw.ImageDraw, text: str, rect: Rect, style: OverlayStyle
    ) -> None:
        x1, y1, x2, y2 = rect
        inner_width = max(1, x2 - x1 - 2 * style.padding_x)
        inner_height = max(1, y2 - y1 - 2 * style.padding_y)

        max_size = min(MAX_FONT_SIZE, max(style.font_size, int(inner_height / LINE_SPACING)))
        font, lines = _fit_text(text, inner_width, inner_height, max_size, draw)
        line_height = getattr(font, "size", MIN_FONT_SIZE) * LINE_SPACING
        total_height = len(lines) * line_height

        draw.rounded_rectangle(rect, radius=style.corner_radius, fill=style.background_color)
        start_y = y1 + max(style.padding_y, (y2 - y1 - total_height) / 2)
        for i, line in enumerate(lines):
            draw.text(
                (x1 + style.padding_x, start_y + i * line_height),
                line,
                font=font,
                fill=style.text_color,
            )

    def _finish(self, original: Image.Image, composed: Image.Image) -> Image.Image:
        if original.mode == "RGBA":
            return composed
        return composed.convert("RGB")
