"""Загрузка изображений из разных источников и упаковка метаданных.

Принципы:
- SRP: класс отвечает только за получение байт и декодирование.
- OCP: новые источники добавляются отдельными ветками `_read_source`.
- DIP: сетевой доступ делегирован внедряемому `fetcher`, сервис не знает о транспорте.
"""
from __future__ import annotations

import base64
import binascii
import io
import os
from pathlib import Path
from typing import Any, Callable, Optional, Tuple
from urllib.parse import unquote_to_bytes

import requests
import structlog
from PIL import Image, UnidentifiedImageError

from screenlens.errors import DecodeFailure, UnsupportedInputKind
from screenlens.models.image_model import DecodedImage, PixelBuffer

logger = structlog.get_logger()

Fetcher = Callable[[str], bytes]


class RequestsFetcher:
    """Загрузчик удалённых изображений по HTTP(S) через `requests`."""

    def __init__(self, timeout: float = 15.0, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout
        self._session = session or requests.Session()

    def __call__(self, url: str) -> bytes:
        response = self._session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content


class ImageService:
    def __init__(self, fetcher: Optional[Fetcher] = None) -> None:
        self._fetcher = fetcher

    def load(self, source: Any) -> DecodedImage:
        """Читает и декодирует изображение, возвращая пиксели RGBA и метаданные.

        Args:
            source: bytes/bytearray/memoryview, бинарный файловый объект,
                строка data URI, строка http(s) URL или путь (`Path`).

        Returns:
            `DecodedImage` c буфером RGBA, исходными размерами и размером в байтах.

        Raises:
            UnsupportedInputKind: если вход не подходит ни под один вид.
            DecodeFailure: если байты не распознаны как изображение.
            FileNotFoundError: если путь не существует.
            Исключения `fetcher` пробрасываются без изменений.
        """
        raw, kind = self._read_source(source)
        if not raw:
            raise DecodeFailure("Пустые данные изображения")

        try:
            with Image.open(io.BytesIO(raw)) as pil_image:
                pil_image.load()
                fmt = pil_image.format
                rgba = pil_image.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError, EOFError) as exc:
            raise DecodeFailure(f"Данные не являются изображением ({kind}): {exc}") from exc

        width, height = rgba.size
        logger.debug("Image decoded", source=kind, width=width, height=height, size_bytes=len(raw), format=fmt)
        return DecodedImage(
            pixels=PixelBuffer.from_image(rgba),
            width=width,
            height=height,
            size_bytes=len(raw),
            format=fmt,
            source_kind=kind,
        )

    # ---- Источники ----
    def _read_source(self, source: Any) -> Tuple[bytes, str]:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return bytes(source), "bytes"
        if isinstance(source, str):
            if source.startswith("data:"):
                return self._decode_data_uri(source), "data_uri"
            if source.startswith(("http://", "https://")):
                if self._fetcher is None:
                    raise UnsupportedInputKind("URL передан, но загрузчик не задан")
                return bytes(self._fetcher(source)), "url"
            raise UnsupportedInputKind("Строка не является data URI или http(s) URL")
        if isinstance(source, os.PathLike):
            path = Path(source)
            if not path.exists() or not path.is_file():
                raise FileNotFoundError(f"Файл не найден: {path}")
            return path.read_bytes(), "path"
        if hasattr(source, "read"):
            data = source.read()
            if not isinstance(data, (bytes, bytearray)):
                raise UnsupportedInputKind("Файловый объект должен быть открыт в бинарном режиме")
            return bytes(data), "file"
        raise UnsupportedInputKind(f"Неподдерживаемый тип входа: {type(source).__name__}")

    def _decode_data_uri(self, uri: str) -> bytes:
        """Разбирает `data:[<mime>][;base64],<payload>`."""
        header, sep, payload = uri[len("data:"):].partition(",")
        if not sep:
            raise DecodeFailure("Некорректный data URI: нет разделителя ','")
        if header.lower().endswith(";base64"):
            try:
                return base64.b64decode(payload, validate=False)
            except (binascii.Error, ValueError) as exc:
                raise DecodeFailure(f"Некорректный base64 в data URI: {exc}") from exc
        return unquote_to_bytes(payload)
