# core/ranker.py

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from core.dataset import Dataset, Entry
from core.exceptions import InvalidN
from core.metrics import DEFAULT_REGISTRY, Direction, Metric, MetricRegistry

logger = logging.getLogger(__name__)

DatasetLike = Union[Dataset, Iterable]


@dataclass(frozen=True)
class RankedMatch:
    """Identifier with the score it earned against the query"""
    identifier: str
    score: float


def _validate_n(n) -> int:
    # bool is an int subclass but never a meaningful count
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise InvalidN(n)
    return n


def _score_entries(entries: List[Entry], query: Entry, metric: Metric,
                   n_workers: int) -> List[float]:
    """Score entries against the query, returned in entry order"""
    if n_workers <= 1 or len(entries) < 2:
        return [metric.score(entry.vector, query.vector) for entry in entries]

    # map() yields in submission order regardless of completion order
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        return list(executor.map(
            lambda entry: metric.score(entry.vector, query.vector), entries
        ))


def rank_with_scores(dataset: DatasetLike,
                     query_id: str,
                     metric_name: str,
                     n: int,
                     registry: Optional[MetricRegistry] = None,
                     n_workers: int = 1) -> List[RankedMatch]:
    """
    Exhaustively rank dataset entries against a query entry

    Args:
        dataset: Dataset, or iterable of (identifier, vector) pairs
        query_id: Identifier of the reference entry
        metric_name: Registered metric name or alias
        n: Maximum number of matches to return
        registry: Metric registry (standard metrics when omitted)
        n_workers: Threads used to score entries

    Returns:
        Up to n matches, best first, excluding the query itself

    Raises:
        InvalidN, UnknownMetric, QueryNotFound, DimensionMismatch
    """
    n = _validate_n(n)
    metric = (registry or DEFAULT_REGISTRY).resolve(metric_name)

    if not isinstance(dataset, Dataset):
        dataset = Dataset.from_pairs(dataset)
    query = dataset.get(query_id)

    candidates = [entry for entry in dataset if entry.identifier != query.identifier]
    logger.debug("Ranking %d candidates for %s with %s (%d workers)",
                 len(candidates), query_id, metric.name, n_workers)

    scores = _score_entries(candidates, query, metric, n_workers)
    matches = [RankedMatch(entry.identifier, score)
               for entry, score in zip(candidates, scores)]

    # sorted() is stable in both directions, so ties keep dataset order
    matches = sorted(matches, key=lambda match: match.score,
                     reverse=metric.direction is Direction.DESCENDING)
    return matches[:n]


def rank(dataset: DatasetLike,
         query_id: str,
         metric_name: str,
         n: int,
         registry: Optional[MetricRegistry] = None,
         n_workers: int = 1) -> List[str]:
    """Return identifiers of the top-n matches for query_id, best first"""
    matches = rank_with_scores(dataset, query_id, metric_name, n,
                               registry=registry, n_workers=n_workers)
    return [match.identifier for match in matches]
