"""Модели данных для изображений.

Принципы:
- SRP: только структура данных, без логики обработки.
- Чистый код: неизменяемость (`frozen=True`) и read-only массивы numpy.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image


def frozen_array(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, order="C")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Растровый буфер RGBA, 8 бит на канал.

    Fields:
        data: массив `uint8` формы (height, width, 4), только для чтения.
    """
    data: np.ndarray

    def __post_init__(self) -> None:
        arr = np.asarray(self.data)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Ожидался массив (h, w, 4), получено {arr.shape}")
        if arr.dtype != np.uint8:
            arr = arr.astype(np.uint8)
        object.__setattr__(self, "data", frozen_array(arr))

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def rgb(self) -> np.ndarray:
        return self.data[:, :, :3]

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Создаёт буфер из изображения PIL (конвертируя в RGBA при необходимости)."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.asarray(image, dtype=np.uint8))

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.array(self.data))


@dataclass(frozen=True)
class DecodedImage:
    """Декодированное изображение и его метаданные.

    Fields:
        pixels: Пиксели в RGBA.
        width: Исходная ширина, px.
        height: Исходная высота, px.
        size_bytes: Размер закодированных данных.
        format: Формат по версии PIL, например "PNG" (если известен).
        source_kind: Вид входа: "bytes" | "file" | "data_uri" | "url" | "path".
    """
    pixels: PixelBuffer
    width: int
    height: int
    size_bytes: int
    format: Optional[str]
    source_kind: str
