# norm_core/interpolation.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Построение функций интерполяции норм.

Выбор стратегии по количеству точек N:
- 1 точка  -> константа y = c
- 2 точки  -> гипербола y = A/x + B (fallback на среднее или линейную интерполяцию)
- 3+ точек -> подгонка гиперболы методом наименьших квадратов
              (fallback на гиперболу по двум точкам с наименьшей нагрузкой)
Ограничение: X > 0 (иначе гипербола некорректна).
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

import numpy as np
from scipy.interpolate import interp1d

from .errors import EmptyPointSet, NonPositiveLoad, SingularFit
from .norm_models import NormPoint

logger = logging.getLogger(__name__)

# Нагрузки ближе этого порога считаются совпадающими
EQUAL_LOAD_EPS: float = 1e-12

# Порог вырожденности системы нормальных уравнений
SINGULAR_DET_EPS: float = 1e-10


class InterpolationStrategy(Enum):
    """Стратегия, которой построена функция (для диагностики)."""
    CONSTANT = "constant"
    TWO_POINT = "two_point"
    FIT = "fit"
    FALLBACK_MEAN = "fallback_mean"
    FALLBACK_LINEAR = "fallback_linear"
    FALLBACK_TWO_POINT = "fallback_two_point"

    @property
    def is_fallback(self) -> bool:
        return self.name.startswith("FALLBACK")


class InterpolationFunction:
    """Функция нормы float -> float с пометкой стратегии построения."""

    __slots__ = ("_func", "strategy", "degraded", "sentinel", "coefficients", "points_count")

    def __init__(self, func: Callable[[float], float], strategy: InterpolationStrategy,
                 sentinel: float, points_count: int,
                 coefficients: Optional[tuple[float, float]] = None,
                 degraded: bool = False):
        self._func = func
        self.strategy = strategy
        self.sentinel = float(sentinel)
        self.points_count = points_count
        self.coefficients = coefficients
        self.degraded = degraded or strategy.is_fallback

    def __call__(self, load: float) -> float:
        x = float(load)
        if not math.isfinite(x) or x <= 0:
            return self.sentinel
        return float(self._func(x))

    def degrade(self) -> InterpolationFunction:
        """Копия функции, помеченная как запасная (после неудачной подгонки)."""
        strategy = self.strategy
        if strategy is InterpolationStrategy.TWO_POINT:
            strategy = InterpolationStrategy.FALLBACK_TWO_POINT
        return InterpolationFunction(self._func, strategy, self.sentinel, self.points_count,
                                     self.coefficients, degraded=True)

    def __repr__(self) -> str:
        coeffs = ""
        if self.coefficients is not None:
            coeffs = f", A={self.coefficients[0]:.6g}, B={self.coefficients[1]:.6g}"
        return f"InterpolationFunction({self.strategy.value}, n={self.points_count}{coeffs})"


def _hyperbola(a: float, b: float) -> Callable[[float], float]:
    return lambda z: a / z + b


def _build_constant(y: float, sentinel: float) -> InterpolationFunction:
    c = float(y)
    return InterpolationFunction(lambda z: c, InterpolationStrategy.CONSTANT, sentinel, 1)


def _build_two_point(p1: NormPoint, p2: NormPoint, sentinel: float, points_count: int = 2) -> InterpolationFunction:
    """Точная гипербола через две точки."""
    x1, y1 = p1.load, p1.consumption
    x2, y2 = p2.load, p2.consumption

    if abs(x2 - x1) < EQUAL_LOAD_EPS:
        avg = (y1 + y2) / 2.0
        logger.debug("Совпадающие нагрузки (%s), используем среднее %.4f", x1, avg)
        return InterpolationFunction(lambda z: avg, InterpolationStrategy.FALLBACK_MEAN, sentinel, points_count)

    try:
        with np.errstate(all='raise'):
            a = float(np.float64(y1 - y2) * x1 * x2 / (x2 - x1))
            b = float(np.float64(y2 * x2 - y1 * x1) / (x2 - x1))
        if not (math.isfinite(a) and math.isfinite(b)):
            raise ArithmeticError(f"некорректные коэффициенты A={a}, B={b}")
    except ArithmeticError as e:
        logger.warning("Ошибка гиперболы (2 точки): %s, fallback на линейную интерполяцию", e)
        linear = interp1d([x1, x2], [y1, y2], kind='linear', fill_value='extrapolate', bounds_error=False)
        return InterpolationFunction(lambda z: float(linear(z)), InterpolationStrategy.FALLBACK_LINEAR,
                                     sentinel, points_count)

    return InterpolationFunction(_hyperbola(a, b), InterpolationStrategy.TWO_POINT, sentinel,
                                 points_count, coefficients=(a, b))


def fit_hyperbola(loads: Sequence[float], values: Sequence[float]) -> tuple[float, float]:
    """
    МНК-подгонка y = A/x + B по замене u = 1/x.

    Решает систему нормальных уравнений
        [Σu²  Σu] [A]   [Σ(y·u)]
        [Σu   n ] [B] = [Σy    ]

    Raises:
        SingularFit: если определитель системы близок к нулю.
    """
    x = np.asarray(loads, dtype=float)
    y = np.asarray(values, dtype=float)
    u = 1.0 / x
    n = float(len(x))

    matrix = np.array([[np.sum(u * u), np.sum(u)],
                       [np.sum(u), n]])
    rhs = np.array([np.sum(y * u), np.sum(y)])

    det = float(np.linalg.det(matrix))
    if not math.isfinite(det) or abs(det) < SINGULAR_DET_EPS:
        raise SingularFit(det)

    a, b = np.linalg.solve(matrix, rhs)
    if not (np.isfinite(a) and np.isfinite(b)):
        raise ArithmeticError(f"некорректные коэффициенты A={a}, B={b}")
    return float(a), float(b)


def build_interpolation(points: Iterable[NormPoint | tuple[float, float]]) -> InterpolationFunction:
    """
    Создает функцию интерполяции по точкам нормы.

    Raises:
        EmptyPointSet: нет ни одной точки.
        NonPositiveLoad: есть точка с нагрузкой <= 0.
    """
    pts = sorted((NormPoint.from_raw(p) for p in points), key=lambda p: p.load)
    if not pts:
        raise EmptyPointSet()

    for p in pts:
        if not p.load > 0:
            raise NonPositiveLoad(p.load)

    sentinel = min(p.consumption for p in pts)

    if len(pts) == 1:
        return _build_constant(pts[0].consumption, sentinel)

    if len(pts) == 2:
        return _build_two_point(pts[0], pts[1], sentinel)

    try:
        a, b = fit_hyperbola([p.load for p in pts], [p.consumption for p in pts])
    except Exception as e:
        logger.warning("Ошибка подгонки гиперболы (%d точек): %s, fallback на 2 точки", len(pts), e)
        return _build_two_point(pts[0], pts[1], sentinel, points_count=len(pts)).degrade()

    return InterpolationFunction(_hyperbola(a, b), InterpolationStrategy.FIT, sentinel,
                                 len(pts), coefficients=(a, b))
