#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Базовый модуль norm_core: хранилище точек норм, интерполяция и классификация отклонений.
"""

from __future__ import annotations

__version__ = "2.1.0"
__author__ = "Section Normalization System"
__description__ = "Интерполяция норм расхода электроэнергии и классификация отклонений"

from .config import ENGINE_CONFIG, EngineConfig, LOAD_TOLERANCE, POINT_TOLERANCE
from .errors import (
    EmptyPointSet,
    InvalidNumericInput,
    NonPositiveLoad,
    NormEngineError,
    NormNotFound,
    SingularFit,
    StorageError,
)
from .interpolation import InterpolationFunction, InterpolationStrategy, build_interpolation
from .interpolation_cache import InterpolationCache, ValueCache
from .norm_models import (
    NormCurve,
    NormPoint,
    NormType,
    NormValidation,
    UpsertStatus,
    ValidationReport,
)
from .norm_storage import NormPointStore
from .persistence import NormFileRepository
from .status import (
    DEFAULT_CLASSIFIER,
    DeviationClassifier,
    DeviationStatus,
    StatusCategory,
    StatusThresholds,
    classify_deviation,
    validate_thresholds,
)

__all__ = [
    # Конфигурация
    "ENGINE_CONFIG",
    "EngineConfig",
    "LOAD_TOLERANCE",
    "POINT_TOLERANCE",

    # Ошибки
    "NormEngineError",
    "EmptyPointSet",
    "NonPositiveLoad",
    "SingularFit",
    "NormNotFound",
    "InvalidNumericInput",
    "StorageError",

    # Нормы
    "NormPoint",
    "NormCurve",
    "NormType",
    "NormValidation",
    "UpsertStatus",
    "ValidationReport",
    "NormPointStore",
    "NormFileRepository",

    # Интерполяция
    "InterpolationFunction",
    "InterpolationStrategy",
    "build_interpolation",
    "InterpolationCache",
    "ValueCache",

    # Статусы
    "DeviationStatus",
    "DeviationClassifier",
    "StatusCategory",
    "StatusThresholds",
    "DEFAULT_CLASSIFIER",
    "classify_deviation",
    "validate_thresholds",
]

import logging
import sys

_logger = logging.getLogger(__name__)

if sys.version_info < (3, 12):
    import warnings
    warnings.warn(
        f"Модуль norm_core требует Python 3.12+. "
        f"Текущая версия: {sys.version_info.major}.{sys.version_info.minor}",
        UserWarning,
        stacklevel=2
    )

_logger.debug("Модуль norm_core v%s загружен", __version__)
