#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Кэш функций интерполяции норм.

Функция нормы строится лениво при первом обращении и переиспользуется, пока
точки нормы в хранилище совпадают с теми, по которым она построена.
Первое построение для каждой нормы выполняется под отдельной блокировкой,
поэтому параллельные запросы получают одну и ту же функцию.
"""

from __future__ import annotations

import heapq
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .config import LOAD_TOLERANCE, VALUE_MAX_AGE
from .errors import NormEngineError
from .interpolation import InterpolationFunction, build_interpolation
from .norm_models import NormPoint
from .norm_storage import NormPointStore
from .utils import parse_float

logger = logging.getLogger(__name__)

type Builder = Callable[[Iterable[NormPoint]], InterpolationFunction]
type Clock = Callable[[], float]

SECONDS_PER_DAY: float = 86400.0


@dataclass(slots=True)
class _FunctionEntry:
    points: Tuple[NormPoint, ...]
    function: Optional[InterpolationFunction]
    error: Optional[str] = None


@dataclass(slots=True)
class _UsageStats:
    requests: int = 0
    cache_hits: int = 0

    @property
    def hit_ratio(self) -> float:
        return self.cache_hits / self.requests if self.requests else 0.0


@dataclass(slots=True)
class ValueCacheEntry:
    """Кэшированное значение нормы для конкретной нагрузки."""
    norm_id: str
    load: float
    value: float
    created_at: float
    last_used: float
    hits: int = 1

    def is_expired(self, now: float, max_age: Optional[float]) -> bool:
        return max_age is not None and now - self.created_at > max_age

    def eviction_priority(self, now: float) -> float:
        """Чем меньше значение, тем раньше запись будет вытеснена."""
        days_since_last_use = max(0.0, now - self.last_used) / SECONDS_PER_DAY
        days_since_created = max(0.0, now - self.created_at) / SECONDS_PER_DAY
        hit_frequency = self.hits / max(1.0, days_since_created)
        return days_since_last_use / max(0.1, hit_frequency)


class ValueCache:
    """
    Кэш значений (norm_id, нагрузка с допуском) -> значение с ограничением размера.

    Значения раскладываются по корзинам floor(нагрузка / допуск), поиск
    проверяет только соседние корзины. При превышении лимита вытесняется
    сразу доля записей (EVICTION_BATCH), сначала устаревшие.
    """

    EVICTION_BATCH: float = 0.1

    def __init__(self, max_entries: int = 10000, tolerance: float = LOAD_TOLERANCE,
                 clock: Clock = time.time, max_entries_per_norm: Optional[int] = 1000,
                 max_age: Optional[float] = VALUE_MAX_AGE):
        if max_entries < 1:
            raise ValueError(f"max_entries должен быть положительным, получено {max_entries}")
        if not tolerance > 0:
            raise ValueError(f"tolerance должен быть положительным, получено {tolerance}")
        self.max_entries = max_entries
        self.max_entries_per_norm = max_entries_per_norm
        self.max_age = max_age
        self.tolerance = tolerance
        self._clock = clock
        self._entries: Dict[str, Dict[int, Dict[float, ValueCacheEntry]]] = {}
        self._counts: Dict[str, int] = {}
        self._generations: Dict[str, int] = {}
        self._size = 0
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expired = 0

    def _bucket(self, load: float) -> int:
        return math.floor(load / self.tolerance)

    def _nearest(self, norm_id: str, load: float, now: float) -> Optional[ValueCacheEntry]:
        buckets = self._entries.get(norm_id)
        if not buckets:
            return None

        key = self._bucket(load)
        best: Optional[ValueCacheEntry] = None
        stale = []
        for k in (key - 1, key, key + 1):
            for entry in buckets.get(k, {}).values():
                distance = abs(entry.load - load)
                if distance > self.tolerance:
                    continue
                if entry.is_expired(now, self.max_age):
                    stale.append(entry)
                elif best is None or distance < abs(best.load - load):
                    best = entry

        for entry in stale:
            self._remove(entry)
            self.expired += 1
        return best

    def _remove(self, entry: ValueCacheEntry) -> None:
        buckets = self._entries[entry.norm_id]
        key = self._bucket(entry.load)
        bucket = buckets[key]
        del bucket[entry.load]
        if not bucket:
            del buckets[key]
        if not buckets:
            del self._entries[entry.norm_id]
        self._counts[entry.norm_id] -= 1
        if not self._counts[entry.norm_id]:
            del self._counts[entry.norm_id]
        self._size -= 1

    def generation(self, norm_id: str) -> int:
        with self._lock:
            return self._generations.get(norm_id, 0)

    def get(self, norm_id: str, load: float) -> Optional[float]:
        with self._lock:
            now = self._clock()
            best = self._nearest(norm_id, load, now)
            if best is None:
                self.misses += 1
                return None

            best.last_used = now
            best.hits += 1
            self.hits += 1
            return best.value

    def put(self, norm_id: str, load: float, value: float, generation: Optional[int] = None) -> None:
        """Сохраняет значение; запись с устаревшим поколением нормы игнорируется."""
        with self._lock:
            if generation is not None and generation != self._generations.get(norm_id, 0):
                return

            now = self._clock()
            bucket = self._entries.setdefault(norm_id, {}).setdefault(self._bucket(load), {})
            if load not in bucket:
                self._size += 1
                self._counts[norm_id] = self._counts.get(norm_id, 0) + 1
            entry = ValueCacheEntry(norm_id, load, value, created_at=now, last_used=now)
            bucket[load] = entry

            limit = self.max_entries_per_norm
            if limit is not None and self._counts[norm_id] > limit:
                own = [e for b in self._entries[norm_id].values() for e in b.values()]
                self._evict(own, self._counts[norm_id] - self._low_water(limit), now, entry)

            if self._size > self.max_entries:
                everything = [e for buckets in self._entries.values() for b in buckets.values() for e in b.values()]
                self._evict(everything, self._size - self._low_water(self.max_entries), now, entry)

    def _low_water(self, limit: int) -> int:
        return limit - max(1, int(limit * self.EVICTION_BATCH))

    def _evict(self, candidates: List[ValueCacheEntry], count: int, now: float,
               protected: ValueCacheEntry) -> None:
        victims = heapq.nsmallest(
            count,
            (e for e in candidates if e is not protected),
            key=lambda e: (not e.is_expired(now, self.max_age), e.eviction_priority(now), e.last_used),
        )
        for entry in victims:
            self._remove(entry)
            self.evictions += 1

        logger.debug("Вытеснено %d значений из кэша", len(victims))

    def invalidate(self, norm_id: str) -> int:
        """Удаляет значения нормы и переводит ее на новое поколение."""
        with self._lock:
            self._generations[norm_id] = self._generations.get(norm_id, 0) + 1
            self._entries.pop(norm_id, None)
            removed = self._counts.pop(norm_id, 0)
            self._size -= removed
            return removed

    def clear(self) -> None:
        with self._lock:
            for norm_id in self._entries:
                self._generations[norm_id] = self._generations.get(norm_id, 0) + 1
            self._entries.clear()
            self._counts.clear()
            self._size = 0

    def count(self, norm_id: str) -> int:
        with self._lock:
            return self._counts.get(norm_id, 0)

    def __len__(self) -> int:
        with self._lock:
            return self._size

    def __contains__(self, key: object) -> bool:
        norm_id, load = key
        with self._lock:
            return self._nearest(norm_id, load, self._clock()) is not None


class InterpolationCache:
    """Кэш функций интерполяции по norm_id с однократным построением."""

    def __init__(self, store: NormPointStore, value_cache: Optional[ValueCache] = None,
                 builder: Builder = build_interpolation):
        self.store = store
        self.value_cache = value_cache
        self._builder = builder
        self._entries: Dict[str, _FunctionEntry] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._usage: Dict[str, _UsageStats] = {}
        self._stats = {'hits': 0, 'misses': 0, 'builds': 0, 'failures': 0}

        store.subscribe(self._on_norm_changed)

    def _key_lock(self, norm_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(norm_id)
            if lock is None:
                lock = self._key_locks[norm_id] = threading.Lock()
            return lock

    def _record(self, norm_id: str, hit: bool) -> None:
        with self._registry_lock:
            usage = self._usage.setdefault(norm_id, _UsageStats())
            usage.requests += 1
            if hit:
                usage.cache_hits += 1
                self._stats['hits'] += 1
            else:
                self._stats['misses'] += 1

    def _bump(self, counter: str) -> None:
        with self._registry_lock:
            self._stats[counter] += 1

    def _on_norm_changed(self, norm_id: str) -> None:
        if self.value_cache is not None:
            self.value_cache.invalidate(norm_id)
        if self.store.get(norm_id) is None:
            self.invalidate(norm_id)

    def _cached(self, norm_id: str, points: Tuple[NormPoint, ...]) -> Optional[_FunctionEntry]:
        entry = self._entries.get(norm_id)
        if entry is not None and entry.points == points:
            return entry
        return None

    def get_function(self, norm_id: str) -> Optional[InterpolationFunction]:
        """Функция интерполяции нормы (из кэша или построив); None если недоступна."""
        norm_id = str(norm_id)
        curve = self.store.get(norm_id)
        if curve is None:
            logger.debug("Норма %s не найдена в хранилище", norm_id)
            return None

        entry = self._cached(norm_id, curve.points)
        if entry is not None:
            self._record(norm_id, hit=True)
            return entry.function

        with self._key_lock(norm_id):
            curve = self.store.get(norm_id)
            if curve is None:
                return None

            entry = self._cached(norm_id, curve.points)
            if entry is not None:
                self._record(norm_id, hit=True)
                return entry.function

            self._record(norm_id, hit=False)
            entry = self._build(norm_id, curve.points)
            self._entries[norm_id] = entry
            return entry.function

    def _build(self, norm_id: str, points: Tuple[NormPoint, ...]) -> _FunctionEntry:
        try:
            func = self._builder(points)
        except NormEngineError as e:
            self._bump('failures')
            logger.warning("Норма %s не может быть интерполирована: %s", norm_id, e)
            return _FunctionEntry(points, None, str(e))
        except Exception as e:
            self._bump('failures')
            logger.error("Норма %s не может быть интерполирована: %s", norm_id, e, exc_info=True)
            return _FunctionEntry(points, None, str(e))

        self._bump('builds')
        if func.degraded:
            logger.warning("Норма %s: пониженное качество интерполяции (%s)", norm_id, func.strategy.value)
        logger.debug("Создана функция интерполяции для нормы %s: %r", norm_id, func)
        return _FunctionEntry(points, func)

    def build_error(self, norm_id: str) -> Optional[str]:
        """Причина, по которой функция нормы не построена (если была ошибка)."""
        entry = self._entries.get(str(norm_id))
        return entry.error if entry is not None else None

    def evaluate(self, norm_id: str, load: Any) -> Optional[float]:
        """Интерполирует значение нормы для заданной нагрузки."""
        norm_id = str(norm_id)
        x = parse_float(load)
        if x is None:
            logger.warning("Норма %s: некорректная нагрузка %r", norm_id, load)
            return None

        generation = None
        if self.value_cache is not None:
            generation = self.value_cache.generation(norm_id)
            cached = self.value_cache.get(norm_id, x)
            if cached is not None:
                return cached

        func = self.get_function(norm_id)
        if func is None:
            return None

        try:
            value = float(func(x))
        except Exception as e:
            logger.error("Ошибка интерполяции для %s: %s", norm_id, e)
            return None

        if not math.isfinite(value):
            logger.warning("Некорректный результат интерполяции для %s, нагрузка=%s: %s", norm_id, x, value)
            return None

        if self.value_cache is not None:
            self.value_cache.put(norm_id, x, value, generation)
        return value

    def invalidate(self, norm_id: str) -> None:
        norm_id = str(norm_id)
        with self._key_lock(norm_id):
            self._entries.pop(norm_id, None)
        if self.value_cache is not None:
            self.value_cache.invalidate(norm_id)

    def clear(self) -> None:
        """Очищает кэш функций интерполяции."""
        cleared_count = 0
        for norm_id in list(self._entries):
            with self._key_lock(norm_id):
                if self._entries.pop(norm_id, None) is not None:
                    cleared_count += 1
        if self.value_cache is not None:
            self.value_cache.clear()
        logger.info("Очищен кэш: удалено %d функций", cleared_count)

    def cache_info(self) -> Dict[str, Any]:
        with self._registry_lock:
            info: Dict[str, Any] = dict(self._stats)
            info['usage'] = {
                nid: {'requests': u.requests, 'cache_hits': u.cache_hits, 'hit_ratio': u.hit_ratio}
                for nid, u in self._usage.items()
            }
        info['cached_functions'] = sum(1 for e in list(self._entries.values()) if e.function is not None)
        if self.value_cache is not None:
            info['value_cache'] = {
                'size': len(self.value_cache),
                'hits': self.value_cache.hits,
                'misses': self.value_cache.misses,
                'evictions': self.value_cache.evictions,
                'expired': self.value_cache.expired,
            }
        return info
