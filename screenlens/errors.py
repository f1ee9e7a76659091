"""Иерархия ошибок конвейера анализа.

Ошибки декодера прерывают анализ целиком; остальные стадии тотальны и
ошибок не порождают (кроме явных ограничений ресурсов и дедлайна).
"""
from __future__ import annotations


class AnalysisError(Exception):
    """Базовая ошибка анализа изображения."""


class UnsupportedInputKind(AnalysisError):
    """Вход не является ни буфером байт, ни файлом, ни data URI, ни URL."""


class DecodeFailure(AnalysisError):
    """Байты не удалось разобрать как растровое изображение."""


class ResourceLimitExceeded(AnalysisError):
    """Размер данных превышает заданный бюджет памяти стадии."""


class AnalysisTimeout(AnalysisError):
    """Анализ не уложился в заданный дедлайн."""
