"""Миниатюра для отображения и рабочий буфер для анализа."""
from __future__ import annotations

import io
import math
from typing import Tuple

import structlog
from PIL import Image

from screenlens.models.analysis_model import Thumbnail
from screenlens.models.image_model import PixelBuffer

logger = structlog.get_logger()


class ResampleService:
    def thumbnail(self, pixels: PixelBuffer, max_width: int = 800, quality: float = 0.85) -> Thumbnail:
        """
        Миниатюра не шире `max_width` с сохранением пропорций.
        Кодируется в WEBP; если сборка PIL не умеет WEBP, то в PNG.
        """
        src_w, src_h = pixels.size
        w = max(1, min(max_width, src_w))
        h = max(1, int(math.floor(w * src_h / src_w + 0.5)))
        image = pixels.to_image()
        if (w, h) != (src_w, src_h):
            image = image.resize((w, h), Image.Resampling.LANCZOS)

        buf = io.BytesIO()
        fmt = "WEBP"
        try:
            image.save(buf, format=fmt, quality=int(round(quality * 100)))
        except (KeyError, OSError):
            buf = io.BytesIO()
            fmt = "PNG"
            image.save(buf, format=fmt)
        return Thumbnail(data=buf.getvalue(), format=fmt, width=w, height=h)

    def working_size(
        self,
        width: int,
        height: int,
        max_edge: int = 1400,
        max_area: int = 4000 * 4000,
        min_edge: int = 128,
    ) -> Tuple[int, int]:
        """
        Размер рабочего буфера:
        1) защитный множитель по площади min(1, sqrt(max_area / area));
        2) ограничение длинной стороны `max_edge`;
        3) длинная сторона не меньше min(min_edge, исходная длинная сторона).
        Увеличение исходника не выполняется никогда.
        """
        long_edge = max(width, height)
        area_scale = min(1.0, math.sqrt(max_area / float(width * height)))
        reduced_long = long_edge * area_scale
        edge_scale = min(1.0, max_edge / reduced_long)
        scale = area_scale * edge_scale

        target_long = int(math.floor(long_edge * scale + 0.5))
        target_long = max(target_long, min(min_edge, long_edge))
        target_long = min(target_long, long_edge)
        scale = target_long / float(long_edge)

        if width >= height:
            w = target_long
            h = max(1, min(height, int(math.floor(height * scale + 0.5))))
        else:
            h = target_long
            w = max(1, min(width, int(math.floor(width * scale + 0.5))))
        return w, h

    def working_buffer(
        self,
        pixels: PixelBuffer,
        max_edge: int = 1400,
        max_area: int = 4000 * 4000,
        min_edge: int = 128,
    ) -> PixelBuffer:
        """Рабочий буфер для всех стадий анализа (билинейное уменьшение)."""
        size = self.working_size(pixels.width, pixels.height, max_edge, max_area, min_edge)
        if size == pixels.size:
            return pixels
        resized = pixels.to_image().resize(size, Image.Resampling.BILINEAR)
        logger.debug("Working buffer resampled", source=pixels.size, target=size)
        return PixelBuffer.from_image(resized)
