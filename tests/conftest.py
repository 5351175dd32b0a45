import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from norm_core.config import EngineConfig  # noqa: E402
from norm_core.interpolation_cache import InterpolationCache, ValueCache  # noqa: E402
from norm_core.norm_storage import NormPointStore  # noqa: E402
from norm_analysis.engine import NormAnalysisEngine  # noqa: E402


class FakeClock:
    """Управляемые часы для проверки вытеснения из кэша."""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance_days(self, days):
        self.now += days * 86400.0


@pytest.fixture
def hyperbola_points():
    # y = 800/x + 20
    return [(10.0, 100.0), (20.0, 60.0), (40.0, 40.0)]


@pytest.fixture
def store():
    return NormPointStore()


@pytest.fixture
def value_cache():
    return ValueCache(max_entries=100)


@pytest.fixture
def cache(store, value_cache):
    return InterpolationCache(store, value_cache)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine_config(tmp_path):
    config = EngineConfig.create_default(tmp_path)
    config.storage_file = tmp_path / "norms.json"
    return config


@pytest.fixture
def engine(engine_config, hyperbola_points):
    engine = NormAnalysisEngine(engine_config)
    engine.upsert_norm("N1", hyperbola_points, "Нажатие", "Норма на участке А-Б")
    return engine
