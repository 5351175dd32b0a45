#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Модуль анализа участков маршрутов по нормам расхода электроэнергии.
"""

from __future__ import annotations

__version__ = "2.1.0"
__author__ = "Section Normalization System"
__description__ = "Анализ отклонений расхода электроэнергии от норм по участкам"

from .data_models import (
    AnalysisStatistics,
    AnalyzedSegment,
    RouteSegment,
    SectionAnalysisResult,
)
from .engine import NormAnalysisEngine, create_engine
from .section_analyzer import SectionAnalyzer, segments_from_dataframe
from .statistics import StatisticsAggregator, calculate_statistics

__all__ = [
    # Движок
    "NormAnalysisEngine",
    "create_engine",

    # Анализ
    "SectionAnalyzer",
    "segments_from_dataframe",
    "StatisticsAggregator",
    "calculate_statistics",

    # Модели данных
    "RouteSegment",
    "AnalyzedSegment",
    "SectionAnalysisResult",
    "AnalysisStatistics",
]

import logging

logging.getLogger(__name__).debug("Модуль norm_analysis v%s загружен", __version__)
