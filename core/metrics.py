# core/metrics.py

from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Dict, Iterable, List, Optional, Sequence
import numpy as np

from config import MetricWeightsConfig
from core.exceptions import ConfigError, DimensionMismatch, UnknownMetric


class Direction(Enum):
    """Sort direction under which a metric ranks best matches first"""
    ASCENDING = "ascending"    # smaller score = more similar
    DESCENDING = "descending"  # larger score = more similar


@dataclass(frozen=True)
class Metric:
    """Named scoring function tagged with its ranking direction"""
    name: str
    direction: Direction
    score: Callable[[np.ndarray, np.ndarray], float]
    description: str = ""

    def __call__(self, a, b) -> float:
        return self.score(a, b)


def _as_pair(a, b):
    """Coerce both vectors to float arrays of the same length"""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatch(b.shape[0], a.shape[0])
    return a, b


def sum_of_squared_difference(a, b) -> float:
    """Σ(aᵢ − bᵢ)²"""
    a, b = _as_pair(a, b)
    diff = a - b
    return float(np.dot(diff, diff))


def histogram_intersection(a, b) -> float:
    """Σ min(aᵢ, bᵢ); 1.0 for identical normalized histograms"""
    a, b = _as_pair(a, b)
    return float(np.minimum(a, b).sum())


def multi_region_histogram_distance(a, b,
                                    regions: int = 2,
                                    weights: Optional[Sequence[float]] = None) -> float:
    """
    Weighted residual of per-region histogram intersections

    The vector is split into `regions` equal contiguous sub-histograms
    (e.g. top and bottom halves of an image), and the score is
    Σ wₖ · (1 − Σ min(aₖ, bₖ)).

    Args:
        a, b: Concatenated region histograms
        regions: Number of sub-histograms in each vector
        weights: Per-region weights, normalized to sum to 1 (equal by default)

    Returns:
        Distance where 0 means identical histograms
    """
    a, b = _as_pair(a, b)
    if a.shape[0] % regions != 0:
        raise DimensionMismatch(
            (a.shape[0] // regions + 1) * regions, a.shape[0],
            f"length not divisible into {regions} regions"
        )

    weights = _normalize_weights(weights, regions)
    residuals = [
        1.0 - np.minimum(a_part, b_part).sum()
        for a_part, b_part in zip(np.split(a, regions), np.split(b, regions))
    ]
    return float(np.dot(weights, residuals))


def texture_color_distance(a, b,
                           color_weight: float = 0.5,
                           texture_weight: float = 0.5,
                           color_bins: Optional[int] = None) -> float:
    """
    Weighted sum of color and texture histogram residuals

    Vectors hold the color histogram followed by the texture histogram;
    the split falls at `color_bins`, or halfway when unset.
    """
    a, b = _as_pair(a, b)
    split = a.shape[0] // 2 if color_bins is None else color_bins
    if not 0 < split < a.shape[0]:
        raise DimensionMismatch(split + 1, a.shape[0],
                                f"color section of {split} bins leaves no texture bins")

    color = 1.0 - np.minimum(a[:split], b[:split]).sum()
    texture = 1.0 - np.minimum(a[split:], b[split:]).sum()
    return float(color_weight * color + texture_weight * texture)


def cosine_distance(a, b) -> float:
    """1 − cos(a, b); zero vectors are maximally distant"""
    a, b = _as_pair(a, b)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 1.0
    return float(1.0 - np.dot(a, b) / norm)


def _normalize_weights(weights: Optional[Sequence[float]], count: int) -> np.ndarray:
    if weights is None:
        return np.full(count, 1.0 / count)

    weights = np.asarray(weights, dtype=np.float64)
    if weights.shape != (count,):
        raise ValueError(f"Expected {count} region weights, got {weights.shape[0]}")
    if (weights < 0).any() or weights.sum() == 0:
        raise ValueError("Region weights must be non-negative and not all zero")
    return weights / weights.sum()


class MetricRegistry:
    """
    Closed set of metrics looked up by name at query time
    """

    def __init__(self):
        self._metrics: Dict[str, Metric] = {}
        self._aliases: Dict[str, str] = {}

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().lower()

    def register(self, metric: Metric, aliases: Iterable[str] = ()):
        """Register a metric under its name and optional short aliases"""
        keys = [self._key(metric.name)] + [self._key(alias) for alias in aliases]
        for key in keys:
            if key in self._metrics or key in self._aliases:
                raise ValueError(f"Metric '{key}' already registered.")

        canonical = keys[0]
        self._metrics[canonical] = metric
        for alias in keys[1:]:
            self._aliases[alias] = canonical

    def resolve(self, name: str) -> Metric:
        """Return the metric registered under name or alias"""
        if not isinstance(name, str):
            raise UnknownMetric(repr(name), self.names())

        key = self._key(name)
        key = self._aliases.get(key, key)
        if key not in self._metrics:
            raise UnknownMetric(name, self.names())
        return self._metrics[key]

    def names(self) -> List[str]:
        return sorted(self._metrics)

    def aliases_for(self, name: str) -> List[str]:
        canonical = self._key(self.resolve(name).name)
        return sorted(alias for alias, target in self._aliases.items()
                      if target == canonical)

    def __contains__(self, name) -> bool:
        try:
            self.resolve(name)
        except UnknownMetric:
            return False
        return True

    def __iter__(self):
        return iter(self._metrics[name] for name in self.names())


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_weights(weights: MetricWeightsConfig):
    """Reject composite metric settings that could not score anything"""
    regions = weights.histogram_regions
    if isinstance(regions, bool) or not isinstance(regions, int) or regions < 1:
        raise ConfigError(f"histogram_regions must be an integer of at least 1, got {regions!r}")
    for name in ('color_weight', 'texture_weight'):
        value = getattr(weights, name)
        if not _is_number(value) or value < 0:
            raise ConfigError(f"{name} must be a non-negative number, got {value!r}")
    bins = weights.color_bins
    if bins is not None and (isinstance(bins, bool) or not isinstance(bins, int) or bins < 1):
        raise ConfigError(f"color_bins must be a positive integer, got {bins!r}")
    if weights.region_weights is not None:
        if not isinstance(weights.region_weights, (list, tuple)) or \
                not all(_is_number(w) for w in weights.region_weights):
            raise ConfigError("region_weights must be a list of numbers")
        try:
            _normalize_weights(weights.region_weights, regions)
        except ValueError as e:
            raise ConfigError(str(e)) from e


def build_registry(weights: Optional[MetricWeightsConfig] = None) -> MetricRegistry:
    """
    Build the standard metric registry

    Args:
        weights: Composite metric settings; defaults when omitted

    Returns:
        Registry holding every supported metric
    """
    weights = weights or MetricWeightsConfig()
    _check_weights(weights)

    registry = MetricRegistry()
    registry.register(Metric(
        "sum-of-squared-difference", Direction.ASCENDING,
        sum_of_squared_difference,
        "Sum of squared element differences"
    ), aliases=["ssd"])
    registry.register(Metric(
        "histogram-intersection", Direction.DESCENDING,
        histogram_intersection,
        "Sum of element-wise minima of normalized histograms"
    ), aliases=["rgb-hist"])
    registry.register(Metric(
        "multi-region-histogram", Direction.ASCENDING,
        partial(multi_region_histogram_distance,
                regions=weights.histogram_regions,
                weights=weights.region_weights),
        "Weighted intersection residual over image region histograms"
    ), aliases=["multi-hist"])
    registry.register(Metric(
        "texture-and-color-combined", Direction.ASCENDING,
        partial(texture_color_distance,
                color_weight=weights.color_weight,
                texture_weight=weights.texture_weight,
                color_bins=weights.color_bins),
        "Weighted color and texture histogram residuals"
    ), aliases=["texture-color", "depth"])
    registry.register(Metric(
        "cosine-distance", Direction.ASCENDING,
        cosine_distance,
        "One minus cosine similarity of embeddings"
    ), aliases=["depth-dnn"])
    return registry


DEFAULT_REGISTRY = build_registry()
