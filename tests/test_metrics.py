import pytest

from core.metrics import compute_metrics
from preprocessing.dataset import Dataset


def test_small_dataset_end_to_end():
    metrics = compute_metrics([
        {"a": "1", "b": "x"},
        {"a": "2", "b": ""},
        {"a": "1", "b": "x"},
    ])

    assert metrics.total_rows == 3
    assert metrics.total_columns == 2
    assert metrics.total_cells == 6
    assert metrics.duplicate_rows == 1
    assert metrics.missing_values == {"a": 0, "b": 1}
    assert metrics.error_values == {"a": 0, "b": 0}
    assert metrics.completeness == pytest.approx(500 / 6)
    assert metrics.data_types == {"a": "numeric", "b": "text"}
    assert metrics.columns["a"].unique_values == 2
    assert metrics.columns["b"].unique_values == 1


@pytest.mark.parametrize("n", [2, 4, 7])
def test_identical_rows_count_as_n_minus_one_duplicates(n):
    metrics = compute_metrics([{"a": 1, "b": "x"}] * n)
    assert metrics.duplicate_rows == n - 1


def test_key_order_does_not_affect_duplicates():
    metrics = compute_metrics([{"a": 1, "b": 2}, {"b": 2, "a": 1}])
    assert metrics.duplicate_rows == 1


def test_empty_rows():
    metrics = compute_metrics([
        {"a": "", "b": "NA"},
        {"a": None, "b": "null"},
        {"a": "1", "b": "x"},
    ])

    assert metrics.empty_rows == 2
    assert metrics.duplicate_rows == 0
    assert metrics.total_missing_cells == 4


def test_errors_reduce_completeness():
    metrics = compute_metrics([{"v": "#DIV/0!"}, {"v": "1"}])

    assert metrics.total_error_cells == 1
    assert metrics.total_missing_cells == 0
    assert metrics.completeness == pytest.approx(50.0)


def test_mixed_formats_are_format_issues():
    metrics = compute_metrics([{"d": "2024-01-01"}, {"d": "01/02/2024"}, {"d": "x"}, {"d": "2024-03-01"}])

    assert metrics.columns["d"].formats == ("date-iso", "date-us", "text")
    assert metrics.columns["d"].format_issues == 2


def test_unique_values_use_exact_match():
    metrics = compute_metrics([{"c": "A"}, {"c": "a"}, {"c": 1}, {"c": 1.0}, {"c": None}])

    assert metrics.columns["c"].unique_values == 3
    assert metrics.data_types["c"] == "text"


def test_all_missing_column_is_unknown():
    metrics = compute_metrics([{"a": 1, "b": ""}, {"a": 2, "b": None}])
    assert metrics.data_types["b"] == "unknown"


def test_metrics_are_idempotent():
    dataset = Dataset.from_records([{"a": "1", "b": "#REF!"}, {"a": "", "b": "y"}, {"a": "1", "b": "#REF!"}])
    assert compute_metrics(dataset) == compute_metrics(dataset)


def test_empty_dataset():
    metrics = compute_metrics([])

    assert metrics.total_rows == 0
    assert metrics.total_cells == 0
    assert metrics.completeness == 0.0
    assert metrics.missing_percentage == 0.0
    assert metrics.duplicate_percentage == 0.0


def test_rows_without_columns():
    metrics = compute_metrics([{}, {}])

    assert metrics.total_columns == 0
    assert metrics.total_cells == 0
    assert metrics.completeness == 0.0


def test_outliers_reach_column_metrics():
    metrics = compute_metrics([{"v": str(v)} for v in [1, 2, 3, 4, 5, 100]])

    assert metrics.columns["v"].outliers == 1
    assert metrics.total_outliers == 1


def test_to_dict_is_plain_data():
    data = compute_metrics([{"a": "1"}, {"a": "x"}]).to_dict()

    assert data["columns"]["a"]["formats"] == ["integer", "text"]
    assert data["total_outliers"] == 0
    assert "missing_percentage" in data


def test_integer_too_large_for_float():
    metrics = compute_metrics([{"a": 10 ** 400}, {"a": 1}])

    assert metrics.total_missing_cells == 0
    assert metrics.total_error_cells == 0
    assert metrics.data_types == {"a": "numeric"}
    assert metrics.columns["a"].outliers == 0
    assert metrics.duplicate_rows == 0
