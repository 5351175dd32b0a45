import json

import pytest

from norm_analysis.data_models import RouteSegment
from norm_analysis.engine import NormAnalysisEngine
from norm_core.errors import NormNotFound
from norm_core.norm_models import UpsertStatus
from norm_core.status import DeviationStatus


def test_analyze_and_aggregate(engine):
    segments = [
        RouteSegment("А-Б", 20.0, 66.0, "N1"),
        RouteSegment("А-Б", 10.0, 98.0, "N1"),
        RouteSegment("А-Б", 40.0, 52.8, "N1"),
        RouteSegment("А-Б", "??", 52.8, "N1"),
    ]

    result = engine.analyze_section("А-Б", segments)
    stats = engine.statistics(result.segments)

    assert result.skipped == 1
    assert [s.status for s in result.segments] == [
        DeviationStatus.OVERRUN_WEAK, DeviationStatus.NORMAL, DeviationStatus.OVERRUN_STRONG,
    ]
    assert stats.total == 3
    assert stats.mean_deviation == pytest.approx(40.0 / 3)


def test_save_and_reload(engine, engine_config):
    engine.save()

    reloaded = NormAnalysisEngine(engine_config)
    assert reloaded.load() == {"N1": UpsertStatus.NEW}
    assert reloaded.evaluate("N1", 20.0) == pytest.approx(60.0)
    assert reloaded.load() == {"N1": UpsertStatus.UNCHANGED}


def test_norm_info(engine):
    info = engine.get_norm_info("N1")

    assert info["points_count"] == 3
    assert info["interpolation"] == "fit"
    assert info["degraded"] is False
    assert info["load_range"] == "10.0 - 40.0 т/ось"
    assert engine.get_norm_info("missing") is None


def test_remove_norm(engine):
    engine.remove_norm("N1")
    assert engine.evaluate("N1", 20.0) is None

    with pytest.raises(NormNotFound):
        engine.remove_norm("N1")


def test_validate_and_storage_info(engine):
    engine.upsert_norms({"N2": {"points": [], "normType": "Нажатие"}})

    report = engine.validate_all()
    info = engine.get_storage_info()

    assert report.valid_ids == ["N1"]
    assert report.to_dict()["invalid"] == ["Норма N2: нет точек"]
    assert info["norms_in_memory"] == 2
    assert "cache" in info


def test_load_skips_norm_with_corrupt_point(engine_config):
    engine_config.storage_file.write_text(json.dumps({
        "metadata": {},
        "norms": {
            "A": {"points": [[10.0, 100.0], [20.0, 60.0]], "normType": "Нажатие"},
            "B": {"points": [[None, 5.0]], "normType": "Нажатие"},
            "C": {"points": [[15.0, 70.0]], "normType": "Вес"},
        },
    }), encoding="utf-8")

    engine = NormAnalysisEngine(engine_config)

    assert engine.load() == {"A": UpsertStatus.NEW, "C": UpsertStatus.NEW}
    assert engine.validate_all().valid_ids == ["A", "C"]


def test_least_squares_norm_end_to_end(engine_config):
    engine = NormAnalysisEngine(engine_config)
    engine.upsert_norm("N1", [(10.0, 100.0), (20.0, 60.0), (30.0, 46.67)])
    segments = [
        RouteSegment("А-Б", 20.0, 66.0, "N1"),
        RouteSegment("А-Б", 10.0, 98.0, "N1"),
        RouteSegment("А-Б", 30.0, 61.6, "N1"),
    ]

    result = engine.analyze_section("А-Б", segments)
    stats = engine.statistics(result.segments)

    first = result.segments[0]
    assert engine.get_norm_info("N1")["interpolation"] == "fit"
    assert first.norm_value == pytest.approx(60.0, abs=0.05)
    assert first.deviation == pytest.approx(10.0, abs=0.1)
    assert first.status is DeviationStatus.OVERRUN_WEAK
    assert [s.deviation for s in result.segments] == pytest.approx([10.0, -2.0, 32.0], abs=0.1)
    assert stats.mean_deviation == pytest.approx(13.33, abs=0.1)
    assert stats.min_deviation == pytest.approx(-2.0, abs=0.1)
    assert stats.max_deviation == pytest.approx(32.0, abs=0.1)
    assert stats.count(DeviationStatus.OVERRUN_WEAK) == 1
    assert stats.count(DeviationStatus.NORMAL) == 1
    assert stats.count(DeviationStatus.OVERRUN_STRONG) == 1
