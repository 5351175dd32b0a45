#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Единый классификатор статусов отклонений.
Семиуровневая шкала основная, трехуровневая (экономия/норма/перерасход) выводится из нее.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Final, List, Optional, Tuple

type ThresholdValue = float
type ColorHex = str


class StatusCategory(Enum):
    """Категории статусов для группировки"""
    ECONOMY = auto()
    NORMAL = auto()
    OVERRUN = auto()


class DeviationStatus(Enum):
    """Статус отклонения фактического расхода от нормы."""
    ECONOMY_STRONG = "Экономия сильная"
    ECONOMY_MEDIUM = "Экономия средняя"
    ECONOMY_WEAK = "Экономия слабая"
    NORMAL = "Норма"
    OVERRUN_WEAK = "Перерасход слабый"
    OVERRUN_MEDIUM = "Перерасход средний"
    OVERRUN_STRONG = "Перерасход сильный"
    UNCLASSIFIED = "Не определен"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def category(self) -> Optional[StatusCategory]:
        return _STATUS_CATEGORIES.get(self)

    @property
    def color(self) -> ColorHex:
        return _STATUS_COLORS.get(self, '#808080')


_STATUS_CATEGORIES: Final[Dict[DeviationStatus, StatusCategory]] = {
    DeviationStatus.ECONOMY_STRONG: StatusCategory.ECONOMY,
    DeviationStatus.ECONOMY_MEDIUM: StatusCategory.ECONOMY,
    DeviationStatus.ECONOMY_WEAK: StatusCategory.ECONOMY,
    DeviationStatus.NORMAL: StatusCategory.NORMAL,
    DeviationStatus.OVERRUN_WEAK: StatusCategory.OVERRUN,
    DeviationStatus.OVERRUN_MEDIUM: StatusCategory.OVERRUN,
    DeviationStatus.OVERRUN_STRONG: StatusCategory.OVERRUN,
}

_STATUS_COLORS: Final[Dict[DeviationStatus, ColorHex]] = {
    DeviationStatus.ECONOMY_STRONG: '#006400',    # Темно-зеленый
    DeviationStatus.ECONOMY_MEDIUM: '#228B22',    # Зеленый
    DeviationStatus.ECONOMY_WEAK: '#32CD32',      # Светло-зеленый
    DeviationStatus.NORMAL: '#FFD700',            # Золотой
    DeviationStatus.OVERRUN_WEAK: '#FF8C00',      # Оранжевый
    DeviationStatus.OVERRUN_MEDIUM: '#FF4500',    # Красно-оранжевый
    DeviationStatus.OVERRUN_STRONG: '#DC143C',    # Малиновый
}


@dataclass(slots=True, frozen=True)
class StatusThresholds:
    """Пороговые значения (включительные верхние границы), %"""
    STRONG_ECONOMY: ThresholdValue = -30.0
    MEDIUM_ECONOMY: ThresholdValue = -20.0
    WEAK_ECONOMY: ThresholdValue = -5.0
    NORMAL_POSITIVE: ThresholdValue = 5.0
    WEAK_OVERRUN: ThresholdValue = 20.0
    MEDIUM_OVERRUN: ThresholdValue = 30.0

    def ladder(self) -> List[Tuple[ThresholdValue, DeviationStatus]]:
        return [
            (self.STRONG_ECONOMY, DeviationStatus.ECONOMY_STRONG),
            (self.MEDIUM_ECONOMY, DeviationStatus.ECONOMY_MEDIUM),
            (self.WEAK_ECONOMY, DeviationStatus.ECONOMY_WEAK),
            (self.NORMAL_POSITIVE, DeviationStatus.NORMAL),
            (self.WEAK_OVERRUN, DeviationStatus.OVERRUN_WEAK),
            (self.MEDIUM_OVERRUN, DeviationStatus.OVERRUN_MEDIUM),
        ]


class DeviationClassifier:
    """Классификатор статусов по отклонениям."""

    def __init__(self, thresholds: StatusThresholds | None = None):
        self.thresholds = thresholds or StatusThresholds()
        self._ladder = self.thresholds.ladder()

    def classify(self, deviation: Optional[float]) -> DeviationStatus:
        """Определяет статус по отклонению в процентах."""
        if deviation is None or math.isnan(deviation):
            return DeviationStatus.UNCLASSIFIED
        for upper, status in self._ladder:
            if deviation <= upper:
                return status
        return DeviationStatus.OVERRUN_STRONG

    def category(self, deviation: Optional[float]) -> Optional[StatusCategory]:
        """Трехуровневая классификация, согласованная с основной шкалой."""
        return self.classify(deviation).category

    def boundaries(self) -> List[ThresholdValue]:
        return [upper for upper, _ in self._ladder]


def validate_thresholds(thresholds: StatusThresholds) -> Tuple[bool, List[str]]:
    """Проверяет строгий порядок порогов относительно нуля."""
    errors = []

    values = [
        thresholds.STRONG_ECONOMY,
        thresholds.MEDIUM_ECONOMY,
        thresholds.WEAK_ECONOMY,
        0,  # Нулевая линия
        thresholds.NORMAL_POSITIVE,
        thresholds.WEAK_OVERRUN,
        thresholds.MEDIUM_OVERRUN,
    ]

    for i in range(len(values) - 1):
        if values[i] >= values[i + 1]:
            errors.append(f"Нарушен порядок порогов: {values[i]} >= {values[i + 1]}")

    return len(errors) == 0, errors


def statuses_by_category(category: StatusCategory) -> List[DeviationStatus]:
    """Возвращает список статусов для категории"""
    return [status for status, cat in _STATUS_CATEGORIES.items() if cat == category]


DEFAULT_CLASSIFIER: Final[DeviationClassifier] = DeviationClassifier()


def classify_deviation(deviation: Optional[float]) -> DeviationStatus:
    return DEFAULT_CLASSIFIER.classify(deviation)
