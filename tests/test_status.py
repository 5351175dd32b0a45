import math

import pytest

from norm_core.status import (
    DeviationClassifier,
    DeviationStatus,
    StatusCategory,
    StatusThresholds,
    classify_deviation,
    statuses_by_category,
    validate_thresholds,
)


@pytest.mark.parametrize("deviation, expected", [
    (-45.0, DeviationStatus.ECONOMY_STRONG),
    (-30.0, DeviationStatus.ECONOMY_STRONG),
    (-29.99, DeviationStatus.ECONOMY_MEDIUM),
    (-20.0, DeviationStatus.ECONOMY_MEDIUM),
    (-10.0, DeviationStatus.ECONOMY_WEAK),
    (-5.0, DeviationStatus.ECONOMY_WEAK),
    (-4.99, DeviationStatus.NORMAL),
    (0.0, DeviationStatus.NORMAL),
    (5.0, DeviationStatus.NORMAL),
    (5.0001, DeviationStatus.OVERRUN_WEAK),
    (20.0, DeviationStatus.OVERRUN_WEAK),
    (30.0, DeviationStatus.OVERRUN_MEDIUM),
    (30.01, DeviationStatus.OVERRUN_STRONG),
])
def test_classify_ladder(deviation, expected):
    assert classify_deviation(deviation) is expected


@pytest.mark.parametrize("deviation", [None, math.nan])
def test_missing_deviation_is_unclassified(deviation):
    assert classify_deviation(deviation) is DeviationStatus.UNCLASSIFIED


def test_category_follows_ladder():
    classifier = DeviationClassifier()
    assert classifier.category(-5.0) is StatusCategory.ECONOMY
    assert classifier.category(5.0) is StatusCategory.NORMAL
    assert classifier.category(5.1) is StatusCategory.OVERRUN
    assert classifier.category(None) is None


def test_custom_thresholds():
    classifier = DeviationClassifier(StatusThresholds(WEAK_ECONOMY=-10.0, NORMAL_POSITIVE=10.0))
    assert classifier.classify(-7.0) is DeviationStatus.NORMAL
    assert classifier.classify(8.0) is DeviationStatus.NORMAL
    assert classifier.boundaries() == [-30.0, -20.0, -10.0, 10.0, 20.0, 30.0]


def test_validate_thresholds():
    ok, errors = validate_thresholds(StatusThresholds())
    assert ok and errors == []

    ok, errors = validate_thresholds(StatusThresholds(MEDIUM_ECONOMY=-40.0))
    assert not ok
    assert len(errors) == 1


def test_statuses_by_category():
    assert statuses_by_category(StatusCategory.NORMAL) == [DeviationStatus.NORMAL]
    assert len(statuses_by_category(StatusCategory.OVERRUN)) == 3


def test_display_and_color():
    assert DeviationStatus.NORMAL.display_name == "Норма"
    assert DeviationStatus.UNCLASSIFIED.color == "#808080"
    assert DeviationStatus.UNCLASSIFIED.category is None
