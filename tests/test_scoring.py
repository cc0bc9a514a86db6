import pytest

from core.metrics import compute_metrics
from preprocessing.dataset import Dataset
from report_components.base_component import AnalysisContext
from report_components.core_components.composite_quality_score import (
    CompositeQualityScoreComponent, baseline_score, reconcile_score, round_half_up,
    score_penalties, score_window
)


def test_perfect_dataset_scores_100():
    assert baseline_score(0, 0, 0) == 100


def test_penalties_are_capped():
    penalties = score_penalties(100, 100, 100)

    assert penalties.missing == 40
    assert penalties.duplicates == 20
    assert penalties.errors == 15
    assert baseline_score(100, 100, 100) == 25
    assert baseline_score(50, 0, 0) == baseline_score(100, 0, 0) == 60


def test_weights():
    assert baseline_score(10, 0, 0) == 92
    assert baseline_score(0, 5, 0) == 90
    assert baseline_score(0, 0, 2) == 90


@pytest.mark.parametrize("axis", [0, 1, 2])
def test_score_never_increases_with_more_defects(axis):
    previous = 100
    for pct in range(0, 101, 5):
        args = [0, 0, 0]
        args[axis] = pct
        score = baseline_score(*args)
        assert 0 <= score <= previous
        previous = score


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(66.666) == 67
    assert round_half_up(72.4) == 72


def test_score_window():
    assert score_window(90) == (75, 100)
    assert score_window(50) == (35, 60)
    assert score_window(5) == (0, 15)


def test_reconcile_clamps_into_window():
    assert reconcile_score(0, 90) == 75
    assert reconcile_score(100, 50) == 60
    assert reconcile_score(55, 50) == 55
    assert reconcile_score(72.5, 70) == 73


def _score(records):
    context = AnalysisContext(Dataset.from_records(records))
    context.shared_artifacts["quality_metrics"] = compute_metrics(records)
    component = CompositeQualityScoreComponent(context)
    component.analyze()
    return component, context


def test_component_sets_baseline():
    component, context = _score([{"a": "1", "b": "x"}, {"a": "2", "b": ""}, {"a": "1", "b": "x"}])

    # 16.7% missing and 33.3% duplicates (capped)
    assert context.shared_artifacts["baseline_score"] == 67
    severities = [issue["severity"] for issue in component.result["quality_issues"]]
    assert severities == sorted(severities, key=["critical", "warning", "suggestion"].index)
    assert component.summarize()["critical_issues"] == 1


def test_component_skips_empty_dataset():
    component, context = _score([])

    assert component.result["skipped"]
    assert context.shared_artifacts["baseline_score"] == 0


def test_component_requires_metrics():
    context = AnalysisContext(Dataset.from_records([{"a": 1}]))
    with pytest.raises(RuntimeError):
        CompositeQualityScoreComponent(context).analyze()


def test_summarize_before_analyze():
    context = AnalysisContext(Dataset.from_records([{"a": 1}]))
    with pytest.raises(RuntimeError, match="analyze"):
        CompositeQualityScoreComponent(context).summarize()
