from __future__ import annotations

import io
from abc import ABC, abstractmethod

import numpy as np
import structlog
from PIL import Image

from screenlens.models.analysis_model import BinaryMask, GradientMap, GrayscaleMap, ProjectionProfile
from screenlens.models.image_model import PixelBuffer

logger = structlog.get_logger()

_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float64)


# ---------- Политики бинаризации ----------
class ThresholdPolicy(ABC):
    """Правило выделения переднего плана (тёмные отметки) на карте яркости."""

    @abstractmethod
    def mask(self, gray: GrayscaleMap) -> BinaryMask:
        raise NotImplementedError


class MeanThreshold(ThresholdPolicy):
    """
    Глобальный порог = средняя яркость; передний план строго темнее среднего.
    Рассчитан на тёмные отметки на светлом фоне.
    """

    def mask(self, gray: GrayscaleMap) -> BinaryMask:
        arr = gray.data
        if arr.size == 0:
            return BinaryMask(np.zeros(arr.shape, dtype=bool))
        mean = float(arr.mean())
        return BinaryMask(arr < mean)


class OtsuThreshold(ThresholdPolicy):
    """
    Порог Отсу; передний план — класс не ярче порога.
    """

    @staticmethod
    def threshold(arr_u8: np.ndarray) -> float:
        """
        Порог Отсу для массива значений [0..255] (uint8).
        Возвращает порог T в тех же единицах.
        """
        hist = np.bincount(arr_u8.flatten(), minlength=256).astype(np.float64)
        total = arr_u8.size
        if total == 0:
            return 0.0

        prob = hist / total
        omega = np.cumsum(prob)  # кумулятивные вероятности
        mu = np.cumsum(prob * np.arange(256))  # кумулятивные средние
        mu_t = mu[-1]

        # Межклассовая дисперсия
        numerator = (mu_t * omega - mu) ** 2
        denominator = omega * (1.0 - omega)
        # избегаем деления на ноль
        with np.errstate(divide="ignore", invalid="ignore"):
            sigma_b2 = np.where(denominator > 0, numerator / denominator, 0.0)
        return float(np.argmax(sigma_b2))

    def mask(self, gray: GrayscaleMap) -> BinaryMask:
        arr = gray.data
        if arr.size == 0 or int(arr.min()) == int(arr.max()):
            # однотонное изображение: разделять нечего
            return BinaryMask(np.zeros(arr.shape, dtype=bool))
        return BinaryMask(arr <= self.threshold(arr))


class ProcessService:
    def to_grayscale(self, pixels: PixelBuffer) -> GrayscaleMap:
        """
        Яркость 0.299R + 0.587G + 0.114B, округление к ближайшему (половина вверх).
        """
        luma = pixels.rgb.astype(np.float64) @ _LUMA
        return GrayscaleMap(np.clip(np.floor(luma + 0.5), 0, 255).astype(np.uint8))

    # ---------- Градиент Собеля ----------
    def sobel(self, gray: GrayscaleMap) -> GradientMap:
        """
        Модуль градиента Собеля hypot(Gx, Gy).
        Граничные строки/столбцы остаются нулевыми (нужна полная окрестность 3x3).
        """
        h, w = gray.data.shape
        mag = np.zeros((h, w), dtype=np.float64)
        if h < 3 or w < 3:
            return GradientMap(mag)

        p = gray.data.astype(np.float64)
        # Классические Собель-фильтры, векторизованная свёртка через сдвиги
        gx = (
            (p[0:-2, 2:] + 2 * p[1:-1, 2:] + p[2:, 2:])
            - (p[0:-2, 0:-2] + 2 * p[1:-1, 0:-2] + p[2:, 0:-2])
        )
        gy = (
            (p[2:, 0:-2] + 2 * p[2:, 1:-1] + p[2:, 2:])
            - (p[0:-2, 0:-2] + 2 * p[0:-2, 1:-1] + p[0:-2, 2:])
        )
        mag[1:-1, 1:-1] = np.hypot(gx, gy)
        logger.debug("Sobel gradient computed", width=w, height=h, peak=float(mag.max()))
        return GradientMap(mag)

    def projection_profile(self, gradient: GradientMap) -> ProjectionProfile:
        """Суммы модуля градиента по строкам (длина h) и столбцам (длина w)."""
        return ProjectionProfile(
            row_sums=gradient.data.sum(axis=1),
            col_sums=gradient.data.sum(axis=0),
        )

    # ---------- Отладка ----------
    def render_gradient(self, gradient: GradientMap) -> Image.Image:
        """
        Карта градиента как 8-битное изображение (L): min(255, round(v)).
        Только для диагностики.
        """
        out = np.minimum(255.0, np.floor(gradient.data + 0.5)).astype(np.uint8)
        return Image.fromarray(out)

    def render_gradient_png(self, gradient: GradientMap) -> bytes:
        buf = io.BytesIO()
        self.render_gradient(gradient).save(buf, format="PNG")
        return buf.getvalue()
