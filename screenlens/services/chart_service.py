"""Эвристика «похоже на график» по проекциям карты градиента.

Оси и линии сетки дают редкие строки/столбцы с резким всплеском суммы
градиента, чего не бывает у фотографий и сплошного текста. Множитель пика и
минимальная доля — подобранные константы, а не статистический тест.
"""
from __future__ import annotations

from typing import Tuple

import numpy as np
import structlog

from screenlens.models.analysis_model import ProjectionProfile

logger = structlog.get_logger()


class ChartService:
    def __init__(self, peak_multiplier: float = 3.0, min_peaks: int = 2, peak_fraction: float = 0.01) -> None:
        self.peak_multiplier = peak_multiplier
        self.min_peaks = min_peaks
        self.peak_fraction = peak_fraction

    def _count(self, sums: np.ndarray) -> int:
        if sums.size == 0:
            return 0
        mean = float(sums.mean())
        return int(np.count_nonzero(sums > mean * self.peak_multiplier))

    def count_peaks(self, profile: ProjectionProfile) -> Tuple[int, int]:
        """Число пиковых строк и пиковых столбцов (сумма > multiplier * среднее)."""
        return self._count(profile.row_sums), self._count(profile.col_sums)

    def is_chart(self, profile: ProjectionProfile) -> bool:
        peak_rows, peak_cols = self.count_peaks(profile)
        row_floor = max(self.min_peaks, profile.height * self.peak_fraction)
        col_floor = max(self.min_peaks, profile.width * self.peak_fraction)
        detected = peak_rows > row_floor or peak_cols > col_floor
        logger.debug("Chart heuristic", peak_rows=peak_rows, peak_cols=peak_cols, detected=detected)
        return detected
