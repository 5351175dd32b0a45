#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Файловое хранение норм: JSON (*.json) или pickle (остальные расширения)."""

from __future__ import annotations

import json
import logging
import os
import pickle
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import StorageError

logger = logging.getLogger(__name__)

STORAGE_VERSION = '1.0'

type NormDocument = Dict[str, Dict[str, Any]]


class NormFileRepository:
    """Загрузка и сохранение документа норм {norm_id: {points, normType, description}}."""

    def __init__(self, storage_file: str | Path = "norms_storage.pkl"):
        self.storage_file = Path(storage_file)
        self.metadata: Dict[str, Any] = {
            'version': STORAGE_VERSION,
            'total_norms': 0,
            'last_updated': None,
            'norm_types': {},
        }

    @property
    def is_json(self) -> bool:
        return self.storage_file.suffix.lower() == '.json'

    def load_all(self) -> NormDocument:
        """Загружает документ норм; отсутствующий файл дает пустой документ."""
        if not self.storage_file.exists():
            logger.info("Файл хранилища %s не найден, создаем новое", self.storage_file)
            return {}

        try:
            if self.is_json:
                with open(self.storage_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            else:
                with open(self.storage_file, 'rb') as f:
                    data = pickle.load(f)
        except (OSError, ValueError, pickle.UnpicklingError, EOFError) as e:
            logger.error("Ошибка загрузки хранилища норм %s: %s", self.storage_file, e)
            raise StorageError(f"Не удалось прочитать хранилище {self.storage_file}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('norms', {}), dict):
            raise StorageError(f"Некорректная структура хранилища {self.storage_file}")

        self.metadata = data.get('metadata', self.metadata)
        norms = data.get('norms', {})
        logger.info("Загружено %d норм из %s", len(norms), self.storage_file)
        return norms

    def save_all(self, document: Mapping[str, Mapping[str, Any]]) -> None:
        """Сохраняет документ норм вместе с метаданными."""
        norm_types: Dict[str, int] = {}
        for nd in document.values():
            t = nd.get('normType', 'Unknown')
            norm_types[t] = norm_types.get(t, 0) + 1

        self.metadata = {
            'version': STORAGE_VERSION,
            'total_norms': len(document),
            'last_updated': datetime.now(timezone.utc).isoformat(),
            'norm_types': norm_types,
        }
        data = {'metadata': self.metadata, 'norms': {str(k): dict(v) for k, v in document.items()}}

        self.storage_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.storage_file.with_name(self.storage_file.name + '.tmp')
        try:
            if self.is_json:
                with open(tmp_file, 'w', encoding='utf-8') as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
            else:
                with open(tmp_file, 'wb') as f:
                    pickle.dump(data, f, protocol=pickle.HIGHEST_PROTOCOL)
            os.replace(tmp_file, self.storage_file)
        except (OSError, TypeError, pickle.PicklingError) as e:
            logger.error("Ошибка сохранения хранилища норм: %s", e)
            raise StorageError(f"Не удалось сохранить хранилище {self.storage_file}: {e}") from e

        logger.info("Хранилище норм сохранено в %s (%d норм)", self.storage_file, len(document))

    def get_storage_info(self) -> Dict[str, Any]:
        """Информация о файле хранилища."""
        return {
            **self.metadata,
            'storage_file': str(self.storage_file),
            'file_size_mb': (self.storage_file.stat().st_size / (1024 * 1024)) if self.storage_file.exists() else 0,
        }
