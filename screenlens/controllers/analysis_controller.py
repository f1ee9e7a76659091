"""Контроллер анализа: оркестрация сервисов и сборка результата.

SOLID:
- SRP: класс управляет порядком стадий и сборкой `AnalysisResult` (без алгоритмов).
- DIP: сервисы и загрузчик внедряются; по умолчанию создаются стандартные.
Clean Code:
- Стадии вызываются строго в порядке зависимостей; тяжёлая логика — в сервисах.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Union

import structlog

from screenlens.errors import AnalysisError, AnalysisTimeout
from screenlens.models.analysis_model import AnalysisResult, DigitReading, GradientMap, ImageMetadata
from screenlens.models.options import AnalysisOptions
from screenlens.services.chart_service import ChartService
from screenlens.services.color_service import ColorService, RandomSource
from screenlens.services.digit_service import DigitService
from screenlens.services.image_service import Fetcher, ImageService
from screenlens.services.process_service import ProcessService, ThresholdPolicy
from screenlens.services.region_service import RegionService
from screenlens.services.resample_service import ResampleService

logger = structlog.get_logger()


def build_summary(
    chart_detected: bool,
    region_count: int,
    colors: Sequence[str],
    sequences: Sequence[str],
) -> str:
    """Однострочное описание: вердикт графика, число областей, до 3 цветов и до 3 чисел."""
    verdict = "chart-like elements" if chart_detected else "no chart-like elements"
    summary = f"Detected {verdict}. {region_count} text regions found. Top colors: {', '.join(colors[:3])}"
    if sequences:
        summary += ". Numeric samples: " + ", ".join(sequences[:3])
    return summary


class _Deadline:
    def __init__(self, seconds: Optional[float]) -> None:
        self._started = time.monotonic()
        self._seconds = seconds

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000

    def check(self, stage: str) -> None:
        if self._seconds is not None and time.monotonic() - self._started > self._seconds:
            raise AnalysisTimeout(f"Дедлайн {self._seconds}s превышен перед стадией '{stage}'")


@dataclass
class AnalysisController:
    """Связывает стадии конвейера анализа.

    Ответственности:
    - Декодирование входа через `ImageService` (ошибки прерывают анализ).
    - Миниатюра и рабочий буфер через `ResampleService`.
    - Палитра, градиент, эвристика графика, области и цифры.
    - Сборка `AnalysisResult` и строки-сводки.
    """
    options: AnalysisOptions = field(default_factory=AnalysisOptions)
    fetcher: Optional[Fetcher] = None
    threshold_policy: Optional[ThresholdPolicy] = None

    def __post_init__(self) -> None:
        opts = self.options
        self._image_service = ImageService(fetcher=self.fetcher)
        self._resample_service = ResampleService()
        self._color_service = ColorService()
        self._process_service = ProcessService()
        self._chart_service = ChartService(
            peak_multiplier=opts.chart_peak_multiplier,
            min_peaks=opts.chart_min_peaks,
            peak_fraction=opts.chart_peak_fraction,
        )
        self._region_service = RegionService(
            policy=self.threshold_policy,
            min_box_area=opts.min_region_area,
            max_height_fraction=opts.max_region_height_fraction,
            pixel_budget=opts.label_pixel_budget,
        )
        self._digit_service = DigitService(
            match_threshold=opts.ocr_match_threshold,
            max_regions=opts.ocr_max_regions,
            skip_blank_windows=opts.ocr_skip_blank_windows,
        )

    def analyze(self, source: Any, rng: RandomSource = None) -> AnalysisResult:
        """Полный анализ одного изображения.

        Args:
            source: Вход декодера (байты, файл, data URI, URL, путь).
            rng: Генератор или seed для k-средних (None = случайный).

        Raises:
            UnsupportedInputKind, DecodeFailure: ошибки декодирования.
            ResourceLimitExceeded: превышен бюджет разметки областей.
            AnalysisTimeout: превышен `options.deadline`.
        """
        opts = self.options
        deadline = _Deadline(opts.deadline)

        try:
            decoded = self._image_service.load(source)
        except AnalysisError as exc:
            logger.error("Image decode failed", error=str(exc), error_type=type(exc).__name__)
            raise

        deadline.check("resample")
        thumbnail = self._resample_service.thumbnail(
            decoded.pixels, max_width=opts.max_thumbnail_width, quality=opts.thumbnail_quality
        )
        working = self._resample_service.working_buffer(
            decoded.pixels,
            max_edge=opts.max_working_edge,
            max_area=opts.max_image_area,
            min_edge=opts.min_working_edge,
        )

        deadline.check("palette")
        palette = self._color_service.dominant_colors(
            working,
            k=opts.k_colors,
            sample_count=opts.sample_pixels,
            iterations=opts.kmeans_iterations,
            rng=rng,
        )
        colors = tuple(c.hex for c in palette)

        deadline.check("gradient")
        gray = self._process_service.to_grayscale(working)
        gradient = self._process_service.sobel(gray)
        profile = self._process_service.projection_profile(gradient)
        chart_detected = self._chart_service.is_chart(profile) if opts.detect_charts else False

        regions = []
        if opts.detect_text:
            deadline.check("regions")
            regions = self._region_service.extract(gray)

        readings: Optional[List[DigitReading]] = None
        if opts.numeric_ocr and regions:
            deadline.check("digits")
            readings = self._digit_service.read(working, regions)

        sequences = [r.text for r in readings or [] if r.matched]
        result = AnalysisResult(
            thumbnail=thumbnail,
            metadata=ImageMetadata(
                width=decoded.width,
                height=decoded.height,
                size_bytes=decoded.size_bytes,
                format=decoded.format,
                source_kind=decoded.source_kind,
            ),
            working_size=working.size,
            dominant_colors=colors,
            projection_profile=profile,
            chart_detected=chart_detected,
            regions=tuple(regions),
            digit_readings=None if readings is None else tuple(readings),
            summary=build_summary(chart_detected, len(regions), colors, sequences),
            gradient=gradient,
        )
        logger.info(
            "Image analysis completed",
            width=decoded.width,
            height=decoded.height,
            working_size=working.size,
            chart_detected=chart_detected,
            regions=len(regions),
            digit_sequences=len(sequences),
            processing_time_ms=f"{deadline.elapsed_ms:.2f}",
        )
        return result

    def edge_map(self, source: Any) -> GradientMap:
        """Карта градиента рабочего буфера (для диагностики)."""
        decoded = self._image_service.load(source)
        working = self._resample_service.working_buffer(
            decoded.pixels,
            max_edge=self.options.max_working_edge,
            max_area=self.options.max_image_area,
            min_edge=self.options.min_working_edge,
        )
        return self._process_service.sobel(self._process_service.to_grayscale(working))


def analyze(
    source: Any,
    options: Union[AnalysisOptions, Mapping[str, Any], None] = None,
    *,
    fetcher: Optional[Fetcher] = None,
    rng: RandomSource = None,
    threshold_policy: Optional[ThresholdPolicy] = None,
) -> AnalysisResult:
    """Единая точка входа: `analyze(input, options) -> AnalysisResult`.

    `options` может быть `AnalysisOptions` или словарём (snake_case/camelCase).
    """
    if not isinstance(options, AnalysisOptions):
        options = AnalysisOptions.from_mapping(options)
    controller = AnalysisController(options=options, fetcher=fetcher, threshold_policy=threshold_policy)
    return controller.analyze(source, rng=rng)
