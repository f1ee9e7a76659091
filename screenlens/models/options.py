"""Параметры анализа.

Все эмпирические константы конвейера (итерации k-средних, пороги пиков,
порог совпадения шаблона и т.д.) собраны здесь, а не зашиты в алгоритмы.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional


# Имена параметров в исходном (camelCase) API -> поля dataclass.
_CAMEL_ALIASES: Dict[str, str] = {
    "maxThumbnailWidth": "max_thumbnail_width",
    "thumbnailQuality": "thumbnail_quality",
    "samplePixels": "sample_pixels",
    "kColors": "k_colors",
    "detectCharts": "detect_charts",
    "detectText": "detect_text",
    "numericOCR": "numeric_ocr",
    "maxImageArea": "max_image_area",
}


@dataclass(frozen=True)
class AnalysisOptions:
    """Неизменяемый набор параметров одного вызова анализа.

    Fields:
        max_thumbnail_width: Максимальная ширина миниатюры, px.
        thumbnail_quality: Качество кодирования миниатюры, 0..1.
        sample_pixels: Сколько пикселей брать для k-средних.
        k_colors: Размер палитры.
        detect_charts: Выполнять эвристику графика.
        detect_text: Искать текстовые области.
        numeric_ocr: Читать цифры в найденных областях.
        max_image_area: Защитный лимит площади (ограничивает CPU).
        ocr_skip_blank_windows: Не сопоставлять окна без чернил (иначе пустое место читается как узкая цифра).
        deadline: Лимит времени на весь анализ, секунды (None = без лимита).
    """
    max_thumbnail_width: int = 800
    thumbnail_quality: float = 0.85
    sample_pixels: int = 2000
    k_colors: int = 3
    detect_charts: bool = True
    detect_text: bool = True
    numeric_ocr: bool = True
    max_image_area: int = 4000 * 4000

    # рабочий буфер
    max_working_edge: int = 1400
    min_working_edge: int = 128

    # k-средних
    kmeans_iterations: int = 8

    # эвристика графика
    chart_peak_multiplier: float = 3.0
    chart_min_peaks: int = 2
    chart_peak_fraction: float = 0.01

    # текстовые области
    min_region_area: int = 30
    max_region_height_fraction: float = 0.8
    label_pixel_budget: int = 4_000_000

    # чтение цифр
    ocr_max_regions: int = 6
    ocr_match_threshold: int = 32 * 6
    ocr_skip_blank_windows: bool = True

    deadline: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_thumbnail_width < 1:
            raise ValueError("max_thumbnail_width должен быть >= 1")
        if not 0.0 < self.thumbnail_quality <= 1.0:
            raise ValueError("thumbnail_quality должен быть в (0, 1]")
        if self.sample_pixels < 0:
            raise ValueError("sample_pixels должен быть >= 0")
        if self.max_image_area < 1:
            raise ValueError("max_image_area должен быть >= 1")
        if self.max_working_edge < 1 or self.min_working_edge < 1:
            raise ValueError("размеры рабочего буфера должны быть >= 1")
        if self.kmeans_iterations < 0:
            raise ValueError("kmeans_iterations должен быть >= 0")
        if not 0.0 < self.max_region_height_fraction <= 1.0:
            raise ValueError("max_region_height_fraction должен быть в (0, 1]")
        if self.label_pixel_budget < 1:
            raise ValueError("label_pixel_budget должен быть >= 1")
        if self.ocr_max_regions < 0:
            raise ValueError("ocr_max_regions должен быть >= 0")
        if self.deadline is not None and self.deadline <= 0:
            raise ValueError("deadline должен быть > 0")

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "AnalysisOptions":
        """Строит параметры из словаря с ключами в snake_case или camelCase.

        Raises:
            ValueError: при неизвестном ключе или недопустимом значении.
        """
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            name = _CAMEL_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Неизвестный параметр анализа: {key}")
            kwargs[name] = value
        return cls(**kwargs)
