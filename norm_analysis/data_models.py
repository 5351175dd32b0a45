# norm_analysis/data_models.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Модели данных анализа участков: входные участки маршрутов, результаты и статистика.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from norm_core.status import DeviationStatus, StatusCategory

# Колонки выгрузки результатов (как в отчетах по маршрутам)
RESULT_COLUMNS: Tuple[str, ...] = (
    "Наименование участка",
    "Номер маршрута",
    "Дата маршрута",
    "Номер нормы",
    "Нажатие на ось",
    "Факт уд",
    "Норма интерполированная",
    "Отклонение, %",
    "Статус",
)


@dataclass(slots=True, frozen=True)
class RouteSegment:
    """Участок маршрута из внешнего парсера (только чтение).

    Числовые поля могут прийти строками ("12,5") и разбираются при анализе.
    """
    section_name: str
    load: Any
    actual_consumption: Any
    norm_id: Any
    route_number: Optional[str] = None
    route_date: Optional[str] = None


@dataclass(slots=True, frozen=True)
class AnalyzedSegment:
    """Участок с интерполированной нормой, отклонением и статусом."""
    segment: RouteSegment
    norm_id: Optional[str]
    load: Optional[float]
    actual: Optional[float]
    norm_value: Optional[float]
    deviation: Optional[float]
    status: DeviationStatus

    @property
    def section_name(self) -> str:
        return self.segment.section_name

    @property
    def is_classified(self) -> bool:
        return self.status is not DeviationStatus.UNCLASSIFIED

    def to_record(self) -> Dict[str, Any]:
        return dict(zip(RESULT_COLUMNS, (
            self.segment.section_name,
            self.segment.route_number,
            self.segment.route_date,
            self.norm_id,
            self.load,
            self.actual,
            self.norm_value,
            self.deviation,
            self.status.value,
        )))


@dataclass(slots=True)
class SectionAnalysisResult:
    """Результат анализа участка."""
    section_name: str
    segments: List[AnalyzedSegment] = field(default_factory=list)
    interpolated: int = 0
    unclassified: int = 0
    skipped: int = 0
    skip_reasons: List[str] = field(default_factory=list)
    unavailable_norms: Dict[str, str] = field(default_factory=dict)

    def as_tuple(self) -> Tuple[List[AnalyzedSegment], int]:
        return self.segments, self.skipped

    def to_dataframe(self) -> pd.DataFrame:
        """Результаты в виде DataFrame для слоев представления."""
        return pd.DataFrame([s.to_record() for s in self.segments], columns=list(RESULT_COLUMNS))


@dataclass(slots=True)
class AnalysisStatistics:
    """Статистика по проанализированным участкам."""
    total: int = 0
    processed: int = 0
    unclassified: int = 0
    status_counts: Dict[DeviationStatus, int] = field(default_factory=dict)
    mean_deviation: Optional[float] = None
    median_deviation: Optional[float] = None
    min_deviation: Optional[float] = None
    max_deviation: Optional[float] = None

    def count(self, status: DeviationStatus) -> int:
        return self.status_counts.get(status, 0)

    def category_count(self, category: StatusCategory) -> int:
        return sum(n for status, n in self.status_counts.items() if status.category is category)

    @property
    def economy(self) -> int:
        return self.category_count(StatusCategory.ECONOMY)

    @property
    def normal(self) -> int:
        return self.category_count(StatusCategory.NORMAL)

    @property
    def overrun(self) -> int:
        return self.category_count(StatusCategory.OVERRUN)

    def to_dict(self) -> Dict[str, Any]:
        """Плоская структура для слоев представления."""
        return {
            "total": self.total,
            "processed": self.processed,
            "unclassified": self.unclassified,
            "economy": self.economy,
            "normal": self.normal,
            "overrun": self.overrun,
            "mean_deviation": self.mean_deviation,
            "median_deviation": self.median_deviation,
            "min_deviation": self.min_deviation,
            "max_deviation": self.max_deviation,
            "detailed_stats": {
                "economy_strong": self.count(DeviationStatus.ECONOMY_STRONG),
                "economy_medium": self.count(DeviationStatus.ECONOMY_MEDIUM),
                "economy_weak": self.count(DeviationStatus.ECONOMY_WEAK),
                "normal": self.count(DeviationStatus.NORMAL),
                "overrun_weak": self.count(DeviationStatus.OVERRUN_WEAK),
                "overrun_medium": self.count(DeviationStatus.OVERRUN_MEDIUM),
                "overrun_strong": self.count(DeviationStatus.OVERRUN_STRONG),
            },
        }
