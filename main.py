# main.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import sys
from datetime import datetime

from norm_core.config import ENGINE_CONFIG, EngineConfig


def setup_logging(config: EngineConfig = ENGINE_CONFIG):
    """Настраивает систему логирования"""

    # Создаем директорию для логов если её нет
    config.logs_dir.mkdir(parents=True, exist_ok=True)

    # Формируем имя файла лога с текущей датой
    log_filename = config.logs_dir / f'norm_engine_{datetime.now().strftime("%Y%m%d")}.log'

    # Настройка корневого логгера
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info("=== ЗАПУСК ДВИЖКА АНАЛИЗА НОРМ РАСХОДА ЭЛЕКТРОЭНЕРГИИ ===")
    logger.info("Версия Python: %s", sys.version)
    logger.info("Файл логов: %s", log_filename)

    return logger


def check_dependencies():
    """Проверяет наличие необходимых зависимостей"""
    logger = logging.getLogger(__name__)

    required_packages = [
        ('pandas', 'pandas'),
        ('numpy', 'numpy'),
        ('scipy', 'scipy'),
    ]

    missing_packages = []

    for package_name, import_name in required_packages:
        try:
            __import__(import_name)
            logger.debug("✓ Пакет %s найден", package_name)
        except ImportError:
            missing_packages.append(package_name)
            logger.error("✗ Пакет %s не найден", package_name)

    if missing_packages:
        logger.error("Установите отсутствующие пакеты с помощью: pip install %s", " ".join(missing_packages))
        return False

    logger.info("Все необходимые зависимости найдены")
    return True


def main(config: EngineConfig = ENGINE_CONFIG):
    """Загружает хранилище норм и проверяет его."""
    config.ensure_directories()
    logger = setup_logging(config)

    if not check_dependencies():
        logger.error("Проверка зависимостей не пройдена")
        return False

    from norm_analysis.engine import NormAnalysisEngine
    from norm_core.errors import StorageError

    engine = NormAnalysisEngine(config)
    try:
        engine.load()
    except StorageError as e:
        logger.error("Хранилище норм недоступно: %s", e)
        return False

    report = engine.validate_all()
    for reason in report.invalid_reasons:
        logger.warning(reason)
    for warning in report.warnings:
        logger.info(warning)

    logger.info("Нормы: валидных=%d, невалидных=%d", len(report.valid_ids), len(report.invalid_reasons))
    return not report.invalid_reasons


if __name__ == "__main__":
    try:
        sys.exit(0 if main() else 1)
    except KeyboardInterrupt:
        print("\nПрервано пользователем")
        sys.exit(0)
