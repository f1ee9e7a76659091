"""Поиск кандидатов текстовых областей: бинаризация + компоненты связности.

Принципы:
- OCP: правило бинаризации подменяется через `ThresholdPolicy`, разметка не меняется.
- Детерминированность: порядок областей = порядок растрового обхода первых пикселей.
"""
from __future__ import annotations

from collections import deque
from typing import List, Optional

import numpy as np
import structlog

from screenlens.errors import ResourceLimitExceeded
from screenlens.models.analysis_model import BinaryMask, GrayscaleMap, Region
from screenlens.services.process_service import MeanThreshold, ThresholdPolicy

logger = structlog.get_logger()


class RegionService:
    def __init__(
        self,
        policy: Optional[ThresholdPolicy] = None,
        min_box_area: int = 30,
        max_height_fraction: float = 0.8,
        pixel_budget: int = 4_000_000,
    ) -> None:
        self.policy = policy or MeanThreshold()
        self.min_box_area = min_box_area
        self.max_height_fraction = max_height_fraction
        self.pixel_budget = pixel_budget

    def binarize(self, gray: GrayscaleMap) -> BinaryMask:
        return self.policy.mask(gray)

    def label(self, mask: BinaryMask) -> List[Region]:
        """
        4-связные компоненты обходом в ширину по массиву посещений.
        Возвращает рамки всех компонент (без фильтрации) в порядке обнаружения.

        Raises:
            ResourceLimitExceeded: если маска больше `pixel_budget` пикселей
                (очередь обхода и массив посещений растут с размером маски).
        """
        h, w = mask.data.shape
        if h * w > self.pixel_budget:
            raise ResourceLimitExceeded(
                f"Маска {w}x{h} превышает бюджет разметки {self.pixel_budget} пикселей"
            )

        fg = bytearray(mask.data.ravel().astype(np.uint8).tobytes())
        visited = bytearray(h * w)
        regions: List[Region] = []

        for start in np.flatnonzero(mask.data.ravel()).tolist():
            if visited[start]:
                continue
            visited[start] = 1
            queue = deque([start])
            min_x, min_y, max_x, max_y, count = w, h, 0, 0, 0
            while queue:
                idx = queue.popleft()
                y, x = divmod(idx, w)
                count += 1
                if x < min_x:
                    min_x = x
                if x > max_x:
                    max_x = x
                if y < min_y:
                    min_y = y
                if y > max_y:
                    max_y = y
                # соседи: вправо, влево, вниз, вверх
                if x + 1 < w:
                    ni = idx + 1
                    if fg[ni] and not visited[ni]:
                        visited[ni] = 1
                        queue.append(ni)
                if x > 0:
                    ni = idx - 1
                    if fg[ni] and not visited[ni]:
                        visited[ni] = 1
                        queue.append(ni)
                if y + 1 < h:
                    ni = idx + w
                    if fg[ni] and not visited[ni]:
                        visited[ni] = 1
                        queue.append(ni)
                if y > 0:
                    ni = idx - w
                    if fg[ni] and not visited[ni]:
                        visited[ni] = 1
                        queue.append(ni)
            regions.append(Region(
                x=min_x,
                y=min_y,
                width=max_x - min_x + 1,
                height=max_y - min_y + 1,
                pixel_area=count,
            ))
        return regions

    def keep(self, region: Region, image_height: int) -> bool:
        """Отсекает мелкий шум и полноразмерные по высоте артефакты (рамки, разделители)."""
        return region.box_area > self.min_box_area and region.height < image_height * self.max_height_fraction

    def extract(self, gray: GrayscaleMap) -> List[Region]:
        mask = self.binarize(gray)
        components = self.label(mask)
        regions = [r for r in components if self.keep(r, gray.height)]
        logger.debug(
            "Regions extracted",
            foreground=mask.foreground_count,
            components=len(components),
            regions=len(regions),
        )
        return regions
