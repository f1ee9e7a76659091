"""Наивное чтение цифр сопоставлением с шаблонами 0-9.

Best-effort: отсутствие совпадений не ошибка, а чтение с пустым текстом и
нулевой уверенностью. Шаблоны рисуются заново на каждый вызов `read`.
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
import structlog
from PIL import Image, ImageDraw, ImageFont

from screenlens.models.analysis_model import DigitMatch, DigitReading, Region
from screenlens.models.image_model import PixelBuffer

logger = structlog.get_logger()

_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float64)


class DigitService:
    def __init__(
        self,
        template_size: int = 32,
        step: int = 16,
        match_threshold: int = 32 * 6,
        dedupe_factor: float = 0.8,
        max_regions: int = 6,
        window_width: Tuple[int, int] = (12, 200),
        window_height: Tuple[int, int] = (12, 80),
        binarize_level: int = 128,
        font_size: int = 20,
        skip_blank_windows: bool = True,
    ) -> None:
        self.template_size = template_size
        self.step = max(1, step)
        self.match_threshold = match_threshold
        self.dedupe_factor = dedupe_factor
        self.max_regions = max_regions
        self.window_width = window_width
        self.window_height = window_height
        self.binarize_level = binarize_level
        self.font_size = font_size
        self.skip_blank_windows = skip_blank_windows

    # ---------- Шаблоны ----------
    def render_templates(self) -> np.ndarray:
        """
        Бинарные шаблоны цифр 0-9, форма (10, T, T), 1 = чернила.
        Цифра чёрным по белому, по центру клетки.
        """
        t = self.template_size
        font = ImageFont.load_default(size=self.font_size)
        templates = np.zeros((10, t, t), dtype=np.int16)
        for digit in range(10):
            canvas = Image.new("L", (t, t), color=255)
            draw = ImageDraw.Draw(canvas)
            text = str(digit)
            left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
            x = (t - (right - left)) / 2 - left
            y = (t - (bottom - top)) / 2 - top + 1
            draw.text((x, y), text, fill=0, font=font)
            templates[digit] = np.asarray(canvas) < self.binarize_level
        return templates

    def template_image(self, templates: np.ndarray, digit: int) -> Image.Image:
        """Шаблон цифры как RGBA-изображение (чёрное на белом)."""
        gray = np.where(templates[digit] > 0, 0, 255).astype(np.uint8)
        return Image.fromarray(gray).convert("RGBA")

    # ---------- Области ----------
    def _clamp(self, value: int, bounds: Tuple[int, int]) -> int:
        return max(bounds[0], min(bounds[1], value))

    def region_window(self, image: Image.Image, region: Region) -> np.ndarray:
        """
        Вырезает область, масштабирует в окно ширины [12, 200] и высоты [12, 80]
        и бинаризует по яркости (< 128 = чернила). Возвращает (ph, pw) int16.
        """
        pw = self._clamp(region.width, self.window_width)
        ph = self._clamp(region.height, self.window_height)
        box = (region.x, region.y, region.x + region.width, region.y + region.height)
        crop = image.crop(box).resize((pw, ph), Image.Resampling.BILINEAR)
        rgb = np.asarray(crop.convert("RGB"), dtype=np.float64)
        luma = np.floor(rgb @ _LUMA + 0.5)
        return (luma < self.binarize_level).astype(np.int16)

    def scan(self, window: np.ndarray, templates: np.ndarray) -> List[DigitMatch]:
        """
        Скользящее окно T x T с шагом `step` по ширине; строки окна приводятся
        к T ближайшим соседом. В каждой позиции — шаблон с минимальной суммой
        модулей разностей; позиция принимается при сумме < `match_threshold`.
        При `skip_blank_windows` пустые окна (без чернил) пропускаются.
        """
        t = self.template_size
        ph, pw = window.shape
        rows = (np.arange(t) * ph) // t
        candidates: List[DigitMatch] = []
        for shift_x in range(0, pw - t + 1, self.step):
            patch = window[rows, shift_x:shift_x + t]
            if self.skip_blank_windows and not patch.any():
                continue
            scores = np.abs(templates - patch[None, :, :]).sum(axis=(1, 2))
            best = int(np.argmin(scores))
            score = int(scores[best])
            if score < self.match_threshold:
                candidates.append(DigitMatch(x=shift_x, digit=best, score=score))
        return candidates

    def dedupe(self, candidates: Sequence[DigitMatch]) -> List[DigitMatch]:
        """Слева направо: отбрасывает совпадения ближе `dedupe_factor * T` к предыдущему принятому."""
        spacing = self.template_size * self.dedupe_factor
        accepted: List[DigitMatch] = []
        last_x = None
        for match in sorted(candidates, key=lambda m: m.x):
            if last_x is None or match.x - last_x > spacing:
                accepted.append(match)
                last_x = match.x
        return accepted

    def read_region(self, image: Image.Image, region: Region, templates: np.ndarray, index: int) -> DigitReading:
        window = self.region_window(image, region)
        matches = self.dedupe(self.scan(window, templates))
        if not matches:
            return DigitReading(region_index=index, text="", confidence=0.0)
        text = "".join(str(m.digit) for m in matches)
        confidence = float(np.mean([1.0 - m.score / float(self.match_threshold) for m in matches]))
        return DigitReading(region_index=index, text=text, confidence=confidence, matches=tuple(matches))

    def read(self, pixels: PixelBuffer, regions: Sequence[Region]) -> List[DigitReading]:
        """Читает цифры в первых `max_regions` областях; по одному чтению на область."""
        selected = list(regions[: self.max_regions])
        if not selected:
            return []
        templates = self.render_templates()
        image = pixels.to_image()
        readings = [self.read_region(image, r, templates, i) for i, r in enumerate(selected)]
        logger.debug(
            "Digits read",
            regions=len(selected),
            matched=sum(1 for r in readings if r.matched),
        )
        return readings
