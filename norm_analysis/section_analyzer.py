# norm_analysis/section_analyzer.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Анализ участков маршрутов с интерполяцией норм."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import pandas as pd

from norm_core.errors import InvalidNumericInput
from norm_core.interpolation import InterpolationFunction
from norm_core.interpolation_cache import InterpolationCache
from norm_core.status import DEFAULT_CLASSIFIER, DeviationClassifier, DeviationStatus
from norm_core.utils import calculate_deviation, normalize_norm_id, normalize_text, parse_float, safe_float

from .data_models import AnalyzedSegment, RouteSegment, SectionAnalysisResult

logger = logging.getLogger(__name__)


class SectionAnalyzer:
    """Анализатор участка: норма по нагрузке, отклонение факта, статус."""

    def __init__(self, cache: InterpolationCache, classifier: DeviationClassifier = DEFAULT_CLASSIFIER):
        self.cache = cache
        self.classifier = classifier

    def analyze(
        self,
        section_name: str,
        segments: Iterable[RouteSegment],
        norm_id: Optional[str] = None,
    ) -> SectionAnalysisResult:
        """Анализирует участки одного участка пути (и, при необходимости, одной нормы)."""
        section = normalize_text(section_name)
        specific_norm = normalize_norm_id(norm_id) if norm_id is not None else None
        result = SectionAnalysisResult(section_name=section)

        section_segments = [
            s for s in segments
            if normalize_text(s.section_name) == section
            and (specific_norm is None or normalize_norm_id(s.norm_id) == specific_norm)
        ]
        logger.debug("Анализ участка %s, строк: %d", section, len(section_segments))

        # Определяем нормы для анализа
        if specific_norm is not None:
            norm_ids = [specific_norm]
        else:
            norm_ids = sorted({nid for nid in (normalize_norm_id(s.norm_id) for s in section_segments) if nid})

        norm_functions = self._resolve_functions(norm_ids, result)

        for segment in section_segments:
            try:
                analyzed = self._analyze_segment(segment, norm_functions)
            except InvalidNumericInput as e:
                self._skip(result, segment, str(e))
                continue
            except Exception as e:
                logger.debug("Ошибка интерполяции для участка %r: %s", segment, e)
                self._skip(result, segment, f"ошибка расчета нормы: {e}")
                continue

            result.segments.append(analyzed)
            if analyzed.norm_value is not None:
                result.interpolated += 1
            if not analyzed.is_classified:
                result.unclassified += 1

        logger.info("Участок %s: проанализировано %d, интерполировано %d, без статуса %d, пропущено %d",
                    section, len(result.segments), result.interpolated, result.unclassified, result.skipped)
        return result

    def _resolve_functions(self, norm_ids: List[str],
                           result: SectionAnalysisResult) -> Dict[str, Optional[InterpolationFunction]]:
        functions: Dict[str, Optional[InterpolationFunction]] = {}
        for nid in norm_ids:
            func = self.cache.get_function(nid)
            functions[nid] = func
            if func is None:
                reason = self.cache.build_error(nid) or "норма не найдена"
                result.unavailable_norms[nid] = reason
                logger.warning("Норма %s не может быть интерполирована: %s", nid, reason)
        return functions

    def _analyze_segment(self, segment: RouteSegment,
                         norm_functions: Dict[str, Optional[InterpolationFunction]]) -> AnalyzedSegment:
        norm_id = normalize_norm_id(segment.norm_id)
        if norm_id is None:
            raise InvalidNumericInput("norm_id", segment.norm_id)

        load = parse_float(segment.load)
        if load is None:
            raise InvalidNumericInput("load", segment.load)

        actual = parse_float(segment.actual_consumption)
        if actual is None:
            raise InvalidNumericInput("actual_consumption", segment.actual_consumption)

        func = norm_functions.get(norm_id)
        if func is None:
            return AnalyzedSegment(segment, norm_id, load, actual, None, None, DeviationStatus.UNCLASSIFIED)

        norm_value = self.cache.evaluate(norm_id, load)
        if norm_value is None:
            raise ArithmeticError(f"норма {norm_id} не вычислена для нагрузки {load}")

        deviation = calculate_deviation(actual, norm_value)
        status = self.classifier.classify(deviation)
        return AnalyzedSegment(segment, norm_id, load, actual, norm_value, deviation, status)

    @staticmethod
    def _skip(result: SectionAnalysisResult, segment: RouteSegment, reason: str) -> None:
        message = f"участок пропущен: {reason}"
        result.skipped += 1
        result.skip_reasons.append(message)
        logger.debug("Маршрут %s, %s", segment.route_number or "-", message)


def _cell_text(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    return normalize_norm_id(value)


def segments_from_dataframe(routes_df: pd.DataFrame) -> List[RouteSegment]:
    """Строит участки для анализа из таблицы маршрутов."""
    segments: List[RouteSegment] = []

    for _, row in routes_df.iterrows():
        load = row.get("Нажатие на ось")
        if parse_float(load) is None:
            # Расчет по БРУТТО/ОСИ
            brutto = safe_float(row.get("БРУТТО"))
            osi = safe_float(row.get("ОСИ"))
            if brutto > 0 and osi > 0:
                load = brutto / osi

        actual = row.get("Факт уд")
        if parse_float(actual) is None:
            actual = row.get("Расход фактический")

        segments.append(RouteSegment(
            section_name=str(row.get("Наименование участка", "") or ""),
            load=load,
            actual_consumption=actual,
            norm_id=row.get("Номер нормы"),
            route_number=_cell_text(row.get("Номер маршрута")),
            route_date=_cell_text(row.get("Дата маршрута")),
        ))

    logger.debug("Подготовлено %d участков из таблицы маршрутов", len(segments))
    return segments
