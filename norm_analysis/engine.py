# norm_analysis/engine.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Движок анализа норм: единая точка входа для внешних слоев."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from norm_core.config import ENGINE_CONFIG, EngineConfig
from norm_core.interpolation_cache import InterpolationCache, ValueCache
from norm_core.norm_models import NormType, UpsertStatus, ValidationReport
from norm_core.norm_storage import NormPointStore
from norm_core.persistence import NormFileRepository
from norm_core.status import DeviationClassifier
from norm_core.utils import format_number

from .data_models import AnalysisStatistics, AnalyzedSegment, RouteSegment, SectionAnalysisResult
from .section_analyzer import SectionAnalyzer
from .statistics import StatisticsAggregator

logger = logging.getLogger(__name__)


class NormAnalysisEngine:
    """
    Интерполяция норм и анализ отклонений по участкам.

    Хранилище, кэш функций, классификатор и агрегатор статистики
    создаются по конфигурации, либо передаются готовыми.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[NormPointStore] = None,
        repository: Optional[NormFileRepository] = None,
        classifier: Optional[DeviationClassifier] = None,
    ):
        self.config = config or ENGINE_CONFIG
        self.store = store or NormPointStore(
            tolerance=self.config.point_tolerance,
            max_points_warning=self.config.max_points_warning,
        )
        self.repository = repository or NormFileRepository(self.config.storage_file)

        value_cache = None
        if self.config.value_cache_enabled:
            value_cache = ValueCache(
                max_entries=self.config.value_cache_max_entries,
                tolerance=self.config.load_tolerance,
                max_entries_per_norm=self.config.value_cache_max_entries_per_norm,
                max_age=self.config.value_cache_max_age,
            )
        self.cache = InterpolationCache(self.store, value_cache)

        self.classifier = classifier or DeviationClassifier()
        self.analyzer = SectionAnalyzer(self.cache, self.classifier)
        self.aggregator = StatisticsAggregator()

        logger.info("Движок анализа норм инициализирован (хранилище: %s)", self.repository.storage_file)

    # ========================== Нормы ==========================

    def upsert_norm(self, norm_id: str, points: Iterable[Any],
                    norm_type: str | NormType | None = None, description: str | None = None) -> UpsertStatus:
        return self.store.upsert(norm_id, points, norm_type, description)

    def upsert_norms(self, norms: Mapping[str, Mapping[str, Any]]) -> Dict[str, UpsertStatus]:
        return self.store.upsert_many(norms)

    def load(self) -> Dict[str, UpsertStatus]:
        """Загружает нормы из файла хранилища."""
        return self.store.load_document(self.repository.load_all())

    def save(self) -> None:
        """Сохраняет нормы в файл хранилища."""
        self.repository.save_all(self.store.to_document())

    def evaluate(self, norm_id: str, load: Any) -> Optional[float]:
        """Значение нормы при заданной нагрузке; None, если норма недоступна."""
        return self.cache.evaluate(norm_id, load)

    def remove_norm(self, norm_id: str) -> None:
        """Удаляет норму; NormNotFound, если ее нет в хранилище."""
        self.store.require(norm_id)
        self.store.remove(norm_id)

    def validate_all(self) -> ValidationReport:
        return self.store.validate_all()

    def get_norm_info(self, norm_id: str) -> Optional[Dict[str, Any]]:
        """Информация о норме для отображения."""
        curve = self.store.get(norm_id)
        if curve is None:
            logger.debug("Норма %s не найдена в хранилище", norm_id)
            return None

        func = self.cache.get_function(curve.norm_id)
        info: Dict[str, Any] = {
            "norm_id": curve.norm_id,
            "description": curve.description or f"Норма №{curve.norm_id}",
            "norm_type": curve.norm_type,
            "points_count": len(curve.points),
            "points": [p.as_list() for p in curve.points[:10]],
            "interpolation": func.strategy.value if func else None,
            "degraded": func.degraded if func else None,
            "load_range": "Нет данных",
            "consumption_range": "Нет данных",
        }

        if curve.points:
            lo, hi = curve.load_range
            cmin, cmax = curve.consumption_range
            info["load_range"] = f"{format_number(lo)} - {format_number(hi)} т/ось"
            info["consumption_range"] = f"{format_number(cmin)} - {format_number(cmax)} кВт·ч/10⁴ ткм"

        return info

    def get_storage_info(self) -> Dict[str, Any]:
        return {
            **self.repository.get_storage_info(),
            "norms_in_memory": len(self.store),
            "cache": self.cache.cache_info(),
        }

    # ========================== Анализ ==========================

    def analyze_section(self, section_name: str, segments: Iterable[RouteSegment],
                        norm_id: Optional[str] = None) -> SectionAnalysisResult:
        """Анализ участка. result.as_tuple() -> (участки, число пропущенных)."""
        logger.info("=== АНАЛИЗ УЧАСТКА === Участок: %s | Норма: %s", section_name, norm_id or "Все")
        return self.analyzer.analyze(section_name, segments, norm_id)

    def statistics(self, analyzed_segments: Iterable[AnalyzedSegment]) -> AnalysisStatistics:
        return self.aggregator.aggregate(analyzed_segments)


def create_engine(storage_file: str | Path | None = None, load: bool = True) -> NormAnalysisEngine:
    """Создает движок с конфигурацией по умолчанию и загружает нормы из файла."""
    config = EngineConfig.create_default()
    if storage_file is not None:
        config.storage_file = Path(storage_file)

    engine = NormAnalysisEngine(config)
    if load:
        engine.load()
    return engine
