# norm_core/norm_storage.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

import pandas as pd

from .config import POINT_TOLERANCE
from .errors import NormNotFound
from .interpolation import build_interpolation
from .norm_models import NormCurve, NormType, NormValidation, UpsertStatus, ValidationReport

logger = logging.getLogger(__name__)

type ChangeListener = Callable[[str], None]


class NormPointStore:
    """Потокобезопасное хранилище точек норм."""

    def __init__(self, tolerance: float = POINT_TOLERANCE, max_points_warning: int = 20):
        self.tolerance = tolerance
        self.max_points_warning = max_points_warning
        self._curves: Dict[str, NormCurve] = {}
        self._lock = threading.RLock()
        self._listeners: List[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        """Подписка на изменения норм (вызывается с norm_id)."""
        self._listeners.append(listener)

    def _notify(self, norm_id: str) -> None:
        for listener in self._listeners:
            listener(norm_id)

    def upsert(self, norm_id: str, points: Iterable[Any] | None,
               norm_type: str | NormType | None = None, description: str | None = None) -> UpsertStatus:
        """Добавляет или обновляет норму. Повторная загрузка тех же данных ничего не меняет."""
        curve = NormCurve.create(norm_id, points, norm_type, description)

        with self._lock:
            existing = self._curves.get(curve.norm_id)
            if existing is not None and existing.same_content(curve, self.tolerance):
                return UpsertStatus.UNCHANGED

            self._curves[curve.norm_id] = curve
            status = UpsertStatus.NEW if existing is None else UpsertStatus.UPDATED

        logger.debug("Норма %s: %s (%d точек)", curve.norm_id, status.value, len(curve.points))
        self._notify(curve.norm_id)
        return status

    def upsert_many(self, norms: Mapping[str, Mapping[str, Any]]) -> Dict[str, UpsertStatus]:
        """Добавляет или обновляет нормы пакетом. Возвращает dict norm_id -> статус."""
        logger.info("Добавление/обновление %d норм", len(norms))
        results: Dict[str, UpsertStatus] = {}

        for norm_id, norm_data in norms.items():
            if not isinstance(norm_data, Mapping):
                raise TypeError(f"Норма {norm_id}: ожидался словарь, получено {type(norm_data).__name__}")
            try:
                results[str(norm_id)] = self.upsert(
                    norm_id,
                    norm_data.get('points'),
                    norm_data.get('normType', norm_data.get('norm_type')),
                    norm_data.get('description'),
                )
            except ValueError as e:
                logger.warning("Норма %s не прошла разбор точек, пропускаем: %s", norm_id, e)

        counts = Counter(status.value for status in results.values())
        logger.info("Результат обновления: %s", dict(counts))
        return results

    def get(self, norm_id: str) -> Optional[NormCurve]:
        """Получить норму по ID."""
        with self._lock:
            return self._curves.get(str(norm_id))

    def require(self, norm_id: str) -> NormCurve:
        curve = self.get(norm_id)
        if curve is None:
            raise NormNotFound(str(norm_id))
        return curve

    def all(self) -> Dict[str, NormCurve]:
        """Снимок всех норм (копия, не живое представление)."""
        with self._lock:
            return dict(self._curves)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._curves)

    def remove(self, norm_id: str) -> bool:
        """Удаляет норму из хранилища."""
        with self._lock:
            removed = self._curves.pop(str(norm_id), None)
        if removed is None:
            return False
        logger.info("Норма %s удалена из хранилища", norm_id)
        self._notify(str(norm_id))
        return True

    def by_type(self, norm_type: str | NormType) -> Dict[str, NormCurve]:
        """Нормы заданного типа."""
        if isinstance(norm_type, NormType):
            norm_type = norm_type.value
        return {nid: c for nid, c in self.all().items() if c.norm_type == norm_type}

    def validate(self, norm_id: str) -> NormValidation:
        """Валидация нормы:
        - Мин. 1 точка
        - X > 0, Y > 0
        - Проверка построения функции
        """
        result = NormValidation(norm_id=str(norm_id))
        curve = self.get(norm_id)
        if curve is None:
            result.valid = False
            result.reasons.append("норма не найдена")
            return result

        points = curve.points
        if len(points) < 1:
            result.valid = False
            result.reasons.append("нет точек")
            return result

        if any(p.load <= 0 or p.consumption <= 0 for p in points):
            result.valid = False
            result.reasons.append("отрицательные или нулевые значения")
            return result

        try:
            func = build_interpolation(points)
        except Exception as e:
            result.valid = False
            result.reasons.append(f"норма не может быть интерполирована: {e}")
            return result

        if len(points) > self.max_points_warning:
            result.warnings.append(f"много точек ({len(points)})")
        elif len(points) == 1:
            result.warnings.append("только одна точка (константа)")

        if func.degraded:
            result.warnings.append(f"пониженное качество интерполяции ({func.strategy.value})")

        return result

    def validate_all(self) -> ValidationReport:
        report = ValidationReport()
        for norm_id in sorted(self.ids()):
            report.add(self.validate(norm_id))

        logger.info("Валидация: валидных=%d, невалидных=%d, предупреждений=%d",
                    len(report.valid_ids), len(report.invalid_reasons), len(report.warnings))
        return report

    def to_document(self) -> Dict[str, Dict[str, Any]]:
        """Документ для сохранения: {norm_id: {points, normType, description}}."""
        return {nid: curve.to_dict() for nid, curve in self.all().items()}

    def load_document(self, document: Mapping[str, Mapping[str, Any]]) -> Dict[str, UpsertStatus]:
        return self.upsert_many(document)

    def norm_statistics(self) -> Dict[str, Any]:
        """Статистика по нормам: количество, распределение по типам/числу точек, диапазоны."""
        curves = self.all()
        stats: Dict[str, Any] = {
            'total_norms': len(curves),
            'by_type': {},
            'points_distribution': {},
            'avg_points_per_norm': 0.0,
            'load_range': {'min': 0.0, 'max': 0.0},
            'consumption_range': {'min': 0.0, 'max': 0.0},
        }

        loads: List[float] = []
        consumptions: List[float] = []
        for curve in curves.values():
            stats['by_type'][curve.norm_type] = stats['by_type'].get(curve.norm_type, 0) + 1
            n = len(curve.points)
            stats['points_distribution'][n] = stats['points_distribution'].get(n, 0) + 1
            loads.extend(p.load for p in curve.points)
            consumptions.extend(p.consumption for p in curve.points)

        if curves:
            stats['avg_points_per_norm'] = len(loads) / len(curves)
        if loads:
            stats['load_range'] = {'min': min(loads), 'max': max(loads)}
            stats['consumption_range'] = {'min': min(consumptions), 'max': max(consumptions)}

        return stats

    def to_dataframe(self) -> pd.DataFrame:
        """Экспортирует нормы в DataFrame (одна строка на точку)."""
        records = [
            {
                'norm_id': nid,
                'norm_type': curve.norm_type,
                'description': curve.description,
                'load': p.load,
                'consumption': p.consumption,
            }
            for nid, curve in self.all().items()
            for p in curve.points
        ]
        return pd.DataFrame(records, columns=['norm_id', 'norm_type', 'description', 'load', 'consumption'])

    def __len__(self) -> int:
        with self._lock:
            return len(self._curves)

    def __contains__(self, norm_id: object) -> bool:
        with self._lock:
            return str(norm_id) in self._curves

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids())
