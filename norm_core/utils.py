# norm_core/utils.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Общие утилиты для работы с числовыми данными."""

from __future__ import annotations

import math
import re
from typing import Any, Optional

import pandas as pd


def normalize_text(text: str) -> str:
    """Единая очистка текста от nbsp/мультипробелов по всему проекту."""
    if not text:
        return ""
    text = text.replace('\xa0', ' ').replace('&nbsp;', ' ')
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def parse_float(value: Any) -> Optional[float]:
    """Разбирает число из ячейки; None, если значение отсутствует или не число."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if pd.isna(value) or math.isinf(value):
            return None
        return float(value)

    if isinstance(value, str):
        cleaned = value.strip().replace(' ', '').replace('\xa0', '')
        if cleaned.endswith('.'):
            cleaned = cleaned[:-1]
        cleaned = cleaned.replace(',', '.')

        if not cleaned or cleaned.lower() in ('nan', 'none', '-', 'n/a', 'inf', '-inf', 'infinity'):
            return None

        try:
            result = float(cleaned)
        except (ValueError, TypeError):
            return None
        return result if math.isfinite(result) else None

    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    return result if math.isfinite(result) else None


def safe_float(value: Any, default: float = 0.0) -> float:
    """Безопасное преобразование к float со значением по умолчанию."""
    parsed = parse_float(value)
    return default if parsed is None else parsed


def normalize_norm_id(value: Any) -> Optional[str]:
    """Приводит номер нормы к строке: 123.0 -> '123', ' 45 ' -> '45'."""
    if value is None:
        return None

    number = parse_float(value)
    if number is not None and number == int(number):
        return str(int(number))

    text = normalize_text(str(value))
    return text or None


def calculate_deviation(actual: float, norm: float) -> Optional[float]:
    """Отклонение факта от нормы в процентах; None при норме <= 0."""
    if norm is None or actual is None:
        return None
    if not math.isfinite(norm) or norm <= 0:
        return None

    deviation = (actual - norm) / norm * 100.0
    return deviation if math.isfinite(deviation) else None


def format_number(value: Any, decimals: int = 1, fallback: str = "N/A") -> str:
    """Безопасное форматирование числа."""
    num = parse_float(value)
    if num is None:
        return fallback
    return f"{num:.{decimals}f}"
