#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Модели данных норм: точки, кривые и результаты валидации.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple

from .config import POINT_TOLERANCE
from .errors import InvalidNumericInput

type RawPoint = Tuple[float, float] | List[float]


class NormType(Enum):
    """Типы норм."""
    AXLE_LOAD = "Нажатие"
    TRAIN_WEIGHT = "Вес"


class UpsertStatus(Enum):
    """Результат добавления нормы в хранилище."""
    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(slots=True, frozen=True, eq=False)
class NormPoint:
    """Точка нормы (нагрузка, расход). Равенство с допуском POINT_TOLERANCE."""
    load: float
    consumption: float

    def is_close(self, other: NormPoint, tolerance: float = POINT_TOLERANCE) -> bool:
        return (math.isclose(self.load, other.load, rel_tol=0.0, abs_tol=tolerance)
                and math.isclose(self.consumption, other.consumption, rel_tol=0.0, abs_tol=tolerance))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NormPoint):
            return NotImplemented
        return self.is_close(other)

    # Равенство с допуском несовместимо с хэшированием
    __hash__ = None

    def as_list(self) -> List[float]:
        return [self.load, self.consumption]

    @classmethod
    def from_raw(cls, raw: Any) -> NormPoint:
        if isinstance(raw, NormPoint):
            return raw
        try:
            load, consumption = raw
            return cls(float(load), float(consumption))
        except (TypeError, ValueError) as e:
            raise InvalidNumericInput("point", raw) from e


def points_equal(first: Iterable[NormPoint], second: Iterable[NormPoint],
                 tolerance: float = POINT_TOLERANCE) -> bool:
    """Сравнивает мультимножества точек с допуском (после сортировки по нагрузке)."""
    a = sorted(first, key=lambda p: (p.load, p.consumption))
    b = sorted(second, key=lambda p: (p.load, p.consumption))
    if len(a) != len(b):
        return False
    return all(p.is_close(q, tolerance) for p, q in zip(a, b))


@dataclass(slots=True, frozen=True)
class NormCurve:
    """Норма: упорядоченные по нагрузке точки, тип и описание."""
    norm_id: str
    points: Tuple[NormPoint, ...] = ()
    norm_type: str = NormType.AXLE_LOAD.value
    description: str = ""

    @classmethod
    def create(cls, norm_id: str, points: Iterable[Any] | None,
               norm_type: str | NormType | None = None, description: str | None = None) -> NormCurve:
        """Создает норму из сырых точек, сортируя их по нагрузке."""
        if points is None:
            raise TypeError(f"Норма {norm_id}: список точек отсутствует (None)")

        parsed = sorted((NormPoint.from_raw(p) for p in points), key=lambda p: p.load)
        if isinstance(norm_type, NormType):
            norm_type = norm_type.value

        return cls(
            norm_id=str(norm_id),
            points=tuple(parsed),
            norm_type=norm_type or NormType.AXLE_LOAD.value,
            description=description or "",
        )

    def same_content(self, other: NormCurve, tolerance: float = POINT_TOLERANCE) -> bool:
        """Совпадение точек (с допуском), типа и описания."""
        return (points_equal(self.points, other.points, tolerance)
                and self.norm_type == other.norm_type
                and self.description == other.description)

    @property
    def load_range(self) -> Tuple[float, float]:
        if not self.points:
            return 0.0, 0.0
        return self.points[0].load, self.points[-1].load

    @property
    def consumption_range(self) -> Tuple[float, float]:
        if not self.points:
            return 0.0, 0.0
        consumptions = [p.consumption for p in self.points]
        return min(consumptions), max(consumptions)

    def to_dict(self) -> Dict[str, Any]:
        """Запись нормы в формате документа хранилища."""
        return {
            'points': [p.as_list() for p in self.points],
            'normType': self.norm_type,
            'description': self.description,
        }


@dataclass(slots=True)
class NormValidation:
    """Результат проверки одной нормы."""
    norm_id: str
    valid: bool = True
    reasons: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ValidationReport:
    """Сводный результат проверки всех норм."""
    valid_ids: List[str] = field(default_factory=list)
    invalid_reasons: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add(self, result: NormValidation) -> None:
        if result.valid:
            self.valid_ids.append(result.norm_id)
        else:
            self.invalid_reasons.extend(f"Норма {result.norm_id}: {r}" for r in result.reasons)
        self.warnings.extend(f"Норма {result.norm_id}: {w}" for w in result.warnings)

    def to_dict(self) -> Dict[str, List[str]]:
        return {'valid': list(self.valid_ids), 'invalid': list(self.invalid_reasons), 'warnings': list(self.warnings)}
