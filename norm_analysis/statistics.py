# norm_analysis/statistics.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Сводная статистика по проанализированным участкам."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

import numpy as np

from norm_core.status import DeviationStatus

from .data_models import AnalysisStatistics, AnalyzedSegment

logger = logging.getLogger(__name__)


class StatisticsAggregator:
    """Сводит результаты анализа в счетчики и показатели отклонений."""

    def aggregate(self, segments: Iterable[AnalyzedSegment]) -> AnalysisStatistics:
        segments = list(segments)
        stats = AnalysisStatistics(total=len(segments))

        counts = Counter(s.status for s in segments if s.status is not DeviationStatus.UNCLASSIFIED)
        stats.status_counts = dict(counts)
        stats.unclassified = stats.total - sum(counts.values())

        raw = np.array([s.deviation for s in segments if s.deviation is not None], dtype=float)
        deviations = raw[np.isfinite(raw)]
        if len(deviations) != len(raw):
            logger.warning("Исключено некорректных отклонений (NaN/inf): %d", len(raw) - len(deviations))

        stats.processed = int(deviations.size)
        if deviations.size:
            stats.mean_deviation = float(np.mean(deviations))
            stats.median_deviation = float(np.median(deviations))
            stats.min_deviation = float(np.min(deviations))
            stats.max_deviation = float(np.max(deviations))

        logger.debug("Статистика: всего=%d, обработано=%d, без статуса=%d",
                     stats.total, stats.processed, stats.unclassified)
        return stats


def calculate_statistics(segments: Iterable[AnalyzedSegment]) -> AnalysisStatistics:
    return StatisticsAggregator().aggregate(segments)
