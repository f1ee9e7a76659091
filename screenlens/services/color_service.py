from __future__ import annotations

from typing import List, Optional, Union

import numpy as np
import structlog

from screenlens.models.analysis_model import ColorCluster
from screenlens.models.image_model import PixelBuffer

logger = structlog.get_logger()

RandomSource = Union[np.random.Generator, int, None]


class ColorService:
    # ---------- Вспомогательные функции ----------
    def _sample_pixels(self, pixels: PixelBuffer, sample_count: int) -> np.ndarray:
        """
        Равномерная выборка с шагом max(1, total // sample_count).
        Возвращает массив (N, 3) float64.
        """
        flat = pixels.rgb.reshape(-1, 3)
        total = flat.shape[0]
        if total == 0 or sample_count <= 0:
            return np.empty((0, 3), dtype=np.float64)
        step = max(1, total // sample_count)
        return flat[::step].astype(np.float64)

    # ---------- K-средних в RGB ----------
    def kmeans(
        self,
        data: np.ndarray,
        k: int = 3,
        iterations: int = 8,
        rng: RandomSource = None,
    ) -> np.ndarray:
        """
        K-средних над точками (N, 3).
        - Инициализация: k случайных точек выборки (с повторением).
        - Назначение: минимум квадрата евклидова расстояния (при равенстве — меньший индекс).
        - Обновление: округлённое среднее; пустой кластер сохраняет прежний центроид.
        Возвращает центроиды (k, 3) int64; пустой массив при k <= 0 или пустых данных.
        """
        if k <= 0 or data.shape[0] == 0:
            return np.empty((0, 3), dtype=np.int64)
        gen = rng if hasattr(rng, "integers") else np.random.default_rng(rng)

        n = data.shape[0]
        centroids = data[gen.integers(0, n, size=k)].copy()
        for _ in range(iterations):
            dists = ((data[:, None, :] - centroids[None, :, :]) ** 2).sum(axis=2)  # (N, k)
            labels = np.argmin(dists, axis=1)
            counts = np.bincount(labels, minlength=k)
            for ci in range(k):
                if counts[ci] == 0:
                    continue
                centroids[ci] = np.floor(data[labels == ci].mean(axis=0) + 0.5)
        return centroids.astype(np.int64)

    def dominant_colors(
        self,
        pixels: PixelBuffer,
        k: int = 3,
        sample_count: int = 2000,
        iterations: int = 8,
        rng: RandomSource = None,
    ) -> List[ColorCluster]:
        """Палитра из k доминирующих цветов рабочего буфера."""
        sample = self._sample_pixels(pixels, sample_count)
        centroids = self.kmeans(sample, k=k, iterations=iterations, rng=rng)
        clusters = [ColorCluster(int(c[0]), int(c[1]), int(c[2])) for c in centroids]
        logger.debug("Palette computed", samples=int(sample.shape[0]), k=k, colors=[c.hex for c in clusters])
        return clusters
