#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Исключения движка интерполяции норм."""

from __future__ import annotations


class NormEngineError(ValueError):
    """Базовая ошибка движка норм."""


class EmptyPointSet(NormEngineError):
    """Норма не содержит ни одной точки."""

    def __init__(self, norm_id: str | None = None):
        self.norm_id = norm_id
        suffix = f" {norm_id}" if norm_id else ""
        super().__init__(f"Норма{suffix}: недостаточно точек для интерполяции")


class NonPositiveLoad(NormEngineError):
    """Нагрузка в точке нормы не положительна, гипербола не определена."""

    def __init__(self, load: float):
        self.load = load
        super().__init__(f"Значения X должны быть положительными для гиперболы (получено {load})")


class SingularFit(NormEngineError):
    """Система нормальных уравнений вырождена."""

    def __init__(self, determinant: float):
        self.determinant = determinant
        super().__init__(f"Вырожденная система МНК (det={determinant:.3e})")


class NormNotFound(NormEngineError):
    def __init__(self, norm_id: str):
        self.norm_id = norm_id
        super().__init__(f"Норма {norm_id} не найдена")


class InvalidNumericInput(NormEngineError):
    """Значение не удалось разобрать как число."""

    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"некорректное значение поля '{field_name}': {value!r}")


class StorageError(NormEngineError):
    """Ошибка чтения или записи файла хранилища норм."""
