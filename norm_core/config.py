from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Допуск сравнения точек норм при проверке "без изменений"
POINT_TOLERANCE: float = 1e-9

# Допуск по нагрузке для повторного использования кэшированного значения
LOAD_TOLERANCE: float = 0.01

# Срок жизни значения в кэше, с
VALUE_MAX_AGE: float = 24 * 3600.0


@dataclass
class EngineConfig:
    """Конфигурация движка анализа норм."""

    # Пути
    app_root: Path
    logs_dir: Path
    storage_file: Path

    # Логирование
    log_level: str = "INFO"

    # Интерполяция
    point_tolerance: float = POINT_TOLERANCE
    load_tolerance: float = LOAD_TOLERANCE
    max_points_warning: int = 20

    # Кэш значений
    value_cache_enabled: bool = True
    value_cache_max_entries: int = 10000
    value_cache_max_entries_per_norm: int = 1000
    value_cache_max_age: float = VALUE_MAX_AGE

    @classmethod
    def create_default(cls, app_root: Path = None) -> EngineConfig:
        """Создает конфигурацию по умолчанию."""
        if app_root is None:
            app_root = Path(__file__).parent.parent

        return cls(
            app_root=app_root,
            logs_dir=app_root / "logs",
            storage_file=app_root / "norms_storage.pkl",
        )

    def ensure_directories(self) -> None:
        """Создает необходимые директории."""
        for directory in [self.logs_dir, self.storage_file.parent]:
            directory.mkdir(parents=True, exist_ok=True)


# Глобальный экземпляр конфигурации
ENGINE_CONFIG = EngineConfig.create_default()
