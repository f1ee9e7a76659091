"""Модели промежуточных карт и итогового результата анализа.

Все сущности создаются заново на каждый вызов анализа и не мутируются вне
стадии, которая их породила.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from screenlens.models.image_model import frozen_array


@dataclass(frozen=True, eq=False)
class GrayscaleMap:
    """Яркость 0..255, один `uint8` на пиксель, форма (height, width)."""
    data: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", frozen_array(np.asarray(self.data, dtype=np.uint8)))

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


@dataclass(frozen=True, eq=False)
class GradientMap:
    """Модуль градиента Собеля (float64, неотрицательный), форма (height, width)."""
    data: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", frozen_array(np.asarray(self.data, dtype=np.float64)))

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


@dataclass(frozen=True, eq=False)
class BinaryMask:
    """Бинарная маска: True = передний план (тёмные пиксели)."""
    data: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", frozen_array(np.asarray(self.data, dtype=bool)))

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def foreground_count(self) -> int:
        return int(np.count_nonzero(self.data))


@dataclass(frozen=True, eq=False)
class ProjectionProfile:
    """Суммы модуля градиента по строкам и столбцам.

    Fields:
        row_sums: длина = height.
        col_sums: длина = width.
    """
    row_sums: np.ndarray
    col_sums: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "row_sums", frozen_array(np.asarray(self.row_sums, dtype=np.float64)))
        object.__setattr__(self, "col_sums", frozen_array(np.asarray(self.col_sums, dtype=np.float64)))

    @property
    def width(self) -> int:
        return int(self.col_sums.size)

    @property
    def height(self) -> int:
        return int(self.row_sums.size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowSums": [float(v) for v in self.row_sums],
            "colSums": [float(v) for v in self.col_sums],
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class Region:
    """Ограничивающий прямоугольник компоненты связности в координатах рабочего буфера.

    Fields:
        x, y: левый верхний угол.
        width, height: размеры рамки, > 0.
        pixel_area: число пикселей переднего плана внутри (не площадь рамки).
    """
    x: int
    y: int
    width: int
    height: int
    pixel_area: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Пустая рамка: {self.width}x{self.height}")
        if self.pixel_area > self.width * self.height:
            raise ValueError("pixel_area больше площади рамки")

    @property
    def box_area(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "w": self.width,
            "h": self.height,
            "area": self.pixel_area,
            "ratio": self.aspect_ratio,
        }


@dataclass(frozen=True)
class ColorCluster:
    """Центроид кластера в RGB (0..255)."""
    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


@dataclass(frozen=True)
class DigitMatch:
    """Принятое совпадение шаблона цифры в позиции окна `x`."""
    x: int
    digit: int
    score: int


@dataclass(frozen=True)
class DigitReading:
    """Результат чтения цифр для одной области.

    Пустой `text` означает «попытка была, совпадений нет» (confidence = 0).
    """
    region_index: int
    text: str
    confidence: float
    matches: Tuple[DigitMatch, ...] = ()

    @property
    def matched(self) -> bool:
        return bool(self.text)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region_index,
            "text": self.text,
            "confidence": round(self.confidence, 4),
        }


@dataclass(frozen=True)
class Thumbnail:
    """Закодированная миниатюра."""
    data: bytes
    format: str
    width: int
    height: int

    @property
    def mime_type(self) -> str:
        return f"image/{self.format.lower()}"

    def to_data_uri(self) -> str:
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    size_bytes: int
    format: Optional[str] = None
    source_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "size": self.size_bytes,
            "format": self.format,
            "source": self.source_kind,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Итог анализа изображения.

    Fields:
        thumbnail: Миниатюра для отображения.
        metadata: Исходные размеры и размер в байтах.
        working_size: Размер рабочего буфера (w, h), на котором шёл анализ.
        dominant_colors: HEX-цвета палитры (порядок не несёт смысла).
        projection_profile: Проекции карты градиента.
        chart_detected: Вердикт эвристики «похоже на график».
        regions: Кандидаты текстовых областей в порядке обнаружения.
        digit_readings: Чтения цифр; None, если чтение не выполнялось.
        summary: Однострочное описание.
        gradient: Карта градиента рабочего буфера (не сериализуется).
    """
    thumbnail: Thumbnail
    metadata: ImageMetadata
    working_size: Tuple[int, int]
    dominant_colors: Tuple[str, ...]
    projection_profile: ProjectionProfile
    chart_detected: bool
    regions: Tuple[Region, ...]
    digit_readings: Optional[Tuple[DigitReading, ...]]
    summary: str = field(default="")
    gradient: Optional[GradientMap] = field(default=None, repr=False, compare=False)

    @property
    def digit_sequences(self) -> List[str]:
        if not self.digit_readings:
            return []
        return [r.text for r in self.digit_readings if r.matched]

    def to_dict(self, include_thumbnail: bool = True) -> Dict[str, Any]:
        """Словарь, готовый к сериализации в JSON."""
        out: Dict[str, Any] = {
            "metadata": self.metadata.to_dict(),
            "workingSize": list(self.working_size),
            "thumbnailSize": [self.thumbnail.width, self.thumbnail.height],
            "dominantColors": list(self.dominant_colors),
            "projectionProfile": self.projection_profile.to_dict(),
            "chartDetected": self.chart_detected,
            "textRegions": [r.to_dict() for r in self.regions],
            "numericOCR": (
                None if self.digit_readings is None
                else [r.to_dict() for r in self.digit_readings]
            ),
            "analysisSummary": self.summary,
        }
        if include_thumbnail:
            out["thumbnail"] = self.thumbnail.to_data_uri()
        return out
