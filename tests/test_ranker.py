# tests/test_ranker.py

import pytest
import numpy as np
from core.dataset import Dataset, Entry
from core.exceptions import (DimensionMismatch, DuplicateIdentifier, InvalidN,
                             QueryNotFound, UnknownMetric)
from core.metrics import DEFAULT_REGISTRY, Direction, Metric, MetricRegistry
from core.ranker import RankedMatch, rank, rank_with_scores


@pytest.fixture
def random_histograms():
    """Dataset of normalized 16-bin two-region histograms"""
    rng = np.random.default_rng(42)
    entries = []
    for i in range(40):
        top, bottom = rng.random(8), rng.random(8)
        vector = np.concatenate([top / top.sum(), bottom / bottom.sum()])
        entries.append(Entry.create(f"pic.{i:04d}.jpg", vector))
    return Dataset(entries)

def test_ssd_scenario(ssd_dataset):
    """Test the nearest SSD match of a two-dimensional query"""
    assert rank(ssd_dataset, "A", "sum-of-squared-difference", 1) == ["B"]

def test_histogram_intersection_scenario(histogram_dataset):
    """Test that intersection ranks the largest overlap first"""
    assert rank(histogram_dataset, "A", "histogram-intersection", 2) == ["B", "C"]

def test_unknown_metric_scenario(ssd_dataset):
    """Test ranking with an unregistered metric name"""
    with pytest.raises(UnknownMetric):
        rank(ssd_dataset, "A", "cosine-unsupported", 1)

def test_scores_are_reported(ssd_dataset):
    """Test that matches carry their metric scores"""
    matches = rank_with_scores(ssd_dataset, "A", "ssd", 5)

    assert matches == [RankedMatch("B", 2.0), RankedMatch("C", 50.0)]

@pytest.mark.parametrize("metric_name", DEFAULT_REGISTRY.names())
def test_query_is_excluded(random_histograms, metric_name):
    """Test that the query never appears in its own results"""
    query = "pic.0007.jpg"
    result = rank(random_histograms, query, metric_name, 100)

    assert query not in result

@pytest.mark.parametrize("metric_name", DEFAULT_REGISTRY.names())
def test_large_n_returns_every_other_entry_once(random_histograms, metric_name):
    """Test that N beyond the dataset size returns each candidate once"""
    query = "pic.0000.jpg"
    result = rank(random_histograms, query, metric_name, len(random_histograms) + 5)

    assert len(result) == len(random_histograms) - 1
    assert sorted(result) == sorted(i for i in random_histograms.identifiers if i != query)

@pytest.mark.parametrize("metric_name", DEFAULT_REGISTRY.names())
def test_results_ordered_by_metric_direction(random_histograms, metric_name):
    """Test that scores are monotonic in the metric's direction"""
    metric = DEFAULT_REGISTRY.resolve(metric_name)
    matches = rank_with_scores(random_histograms, "pic.0003.jpg", metric_name, 20)
    scores = [m.score for m in matches]

    if metric.direction is Direction.ASCENDING:
        assert all(x <= y for x, y in zip(scores, scores[1:]))
    else:
        assert all(x >= y for x, y in zip(scores, scores[1:]))

def test_scores_match_metric(random_histograms):
    """Test that reported scores equal a direct metric call"""
    metric = DEFAULT_REGISTRY.resolve("multi-hist")
    query = random_histograms.get("pic.0010.jpg")

    for match in rank_with_scores(random_histograms, query.identifier, "multi-hist", 5):
        entry = random_histograms.get(match.identifier)
        assert match.score == metric.score(entry.vector, query.vector)

def test_rank_is_deterministic(random_histograms):
    """Test that repeated queries give identical results"""
    first = rank(random_histograms, "pic.0001.jpg", "texture-color", 15)
    second = rank(random_histograms, "pic.0001.jpg", "texture-color", 15)

    assert first == second

def test_ascending_ties_keep_dataset_order():
    """Test that equal distances keep dataset order"""
    dataset = Dataset.from_pairs([
        ("A", [0, 0]),
        ("D", [-1, 0]),
        ("B", [1, 0]),
        ("C", [0, 1]),
    ])

    assert rank(dataset, "A", "ssd", 3) == ["D", "B", "C"]

def test_descending_ties_keep_dataset_order():
    """Test that equal similarities keep dataset order"""
    dataset = Dataset.from_pairs([
        ("B", [0.4, 0.6]),
        ("A", [0.5, 0.5]),
        ("C", [0.6, 0.4]),
        ("E", [0.0, 1.0]),
        ("D", [0.4, 0.6]),
    ])

    assert rank(dataset, "A", "histogram-intersection", 4) == ["B", "C", "D", "E"]

def test_parallel_scoring_matches_serial(random_histograms):
    """Test that threaded scoring gives the serial result"""
    serial = rank_with_scores(random_histograms, "pic.0005.jpg", "ssd", 39)
    parallel = rank_with_scores(random_histograms, "pic.0005.jpg", "ssd", 39, n_workers=4)

    assert parallel == serial

def test_parallel_scoring_preserves_ties():
    """Test that threaded scoring keeps tie order"""
    dataset = Dataset.from_pairs(
        [("query", [0.0, 0.0])] + [(f"tie{i}", [1.0, 0.0]) for i in range(20)]
    )

    result = rank(dataset, "query", "ssd", 20, n_workers=8)
    assert result == [f"tie{i}" for i in range(20)]

def test_fewer_entries_than_n_is_not_an_error(ssd_dataset):
    """Test that a short dataset returns what it has"""
    assert rank(ssd_dataset, "C", "ssd", 10) == ["B", "A"]

def test_single_entry_dataset_returns_empty():
    """Test ranking when the query is the only entry"""
    dataset = Dataset.from_pairs([("only", [1.0, 2.0])])

    assert rank(dataset, "only", "ssd", 3) == []

def test_query_not_found(ssd_dataset):
    """Test ranking for an identifier missing from the dataset"""
    with pytest.raises(QueryNotFound) as excinfo:
        rank(ssd_dataset, "Z", "ssd", 1)

    assert excinfo.value.query_id == "Z"

@pytest.mark.parametrize("n", [0, -1, True, 1.5, "3", None])
def test_invalid_n(ssd_dataset, n):
    """Test that N must be a positive integer"""
    with pytest.raises(InvalidN):
        rank(ssd_dataset, "A", "ssd", n)

def test_invalid_n_checked_first(ssd_dataset):
    """Test that N is validated before metric and query"""
    with pytest.raises(InvalidN):
        rank(ssd_dataset, "missing", "bogus", 0)

def test_unknown_metric_checked_before_query(ssd_dataset):
    """Test that the metric is resolved before the query lookup"""
    with pytest.raises(UnknownMetric):
        rank(ssd_dataset, "missing", "bogus", 1)

def test_query_lookup_happens_before_scoring():
    """Test that a missing query fails without scoring any entry"""
    calls = []
    registry = MetricRegistry()
    registry.register(Metric("counting", Direction.ASCENDING,
                             lambda a, b: calls.append(1) or 0.0))

    with pytest.raises(QueryNotFound):
        rank([("A", [0.0]), ("B", [1.0])], "Z", "counting", 1, registry=registry)
    assert calls == []

def test_dimension_mismatch_is_fatal():
    """Test that one short vector fails the whole query"""
    pairs = [("A", [0.0, 0.0]), ("B", [1.0, 1.0]), ("C", [1.0, 1.0, 1.0])]

    with pytest.raises(DimensionMismatch):
        rank(pairs, "A", "ssd", 1)

def test_dimension_mismatch_is_fatal_in_parallel():
    """Test that threaded scoring also fails on a short vector"""
    pairs = [("A", [0.0, 0.0])] + [(f"E{i}", [1.0, 1.0]) for i in range(10)] + [("bad", [1.0])]

    with pytest.raises(DimensionMismatch):
        rank(pairs, "A", "ssd", 1, n_workers=4)

def test_accepts_plain_pairs():
    """Test ranking over identifier and vector tuples"""
    pairs = [("A", [0, 0]), ("B", [1, 1]), ("C", [5, 5])]

    assert rank(pairs, "A", "ssd", 2) == ["B", "C"]

@pytest.mark.parametrize("bad_value", [np.nan, np.inf, -np.inf])
def test_non_finite_pairs_rejected(bad_value):
    """Test that NaN or infinite features fail instead of scrambling the order"""
    pairs = [("Q", [0, 0]), ("A", [3, 3]), ("N", [bad_value, 0]), ("B", [1, 1]), ("C", [2, 2])]

    with pytest.raises(ValueError):
        rank(pairs, "Q", "ssd", 3)

def test_duplicate_identifiers_rejected():
    """Test that repeated identifiers are rejected"""
    pairs = [("A", [0, 0]), ("B", [1, 1]), ("B", [2, 2])]

    with pytest.raises(DuplicateIdentifier):
        rank(pairs, "A", "ssd", 2)

def test_custom_registry():
    """Test ranking against a caller-supplied registry"""
    registry = MetricRegistry()
    registry.register(Metric("first-coordinate", Direction.DESCENDING,
                             lambda a, b: float(a[0])))
    pairs = [("q", [0.0]), ("low", [1.0]), ("high", [9.0])]

    assert rank(pairs, "q", "first-coordinate", 2, registry=registry) == ["high", "low"]
    with pytest.raises(UnknownMetric):
        rank(pairs, "q", "ssd", 2, registry=registry)
