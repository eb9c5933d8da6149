# core/exceptions.py

from typing import List, Optional


class MatcherError(Exception):
    """Base class for all matching errors"""


class InvalidN(MatcherError):
    """Requested match count is not a positive integer"""

    def __init__(self, n):
        self.n = n
        super().__init__(f"Invalid value for N: {n!r}. N must be a positive integer.")


class QueryNotFound(MatcherError):
    """Query identifier is absent from the dataset"""

    def __init__(self, query_id: str):
        self.query_id = query_id
        super().__init__(f"Target image not found: {query_id}")


class UnknownMetric(MatcherError):
    """Metric name is not registered"""

    def __init__(self, name: str, available: Optional[List[str]] = None):
        self.name = name
        self.available = list(available or [])
        message = f"Invalid distance metric: {name}"
        if self.available:
            message += f". Must be one of: {', '.join(self.available)}"
        super().__init__(message)


class DimensionMismatch(MatcherError):
    """Two feature vectors that must agree in length do not"""

    def __init__(self, expected: int, actual: int, detail: str = ""):
        self.expected = expected
        self.actual = actual
        message = f"Vector length mismatch: expected {expected}, got {actual}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class DuplicateIdentifier(MatcherError):
    """An identifier appears more than once in a dataset"""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Duplicate identifier in dataset: {identifier}")


class FeatureFileError(MatcherError):
    """Feature file cannot be read or parsed"""


class ConfigError(MatcherError, ValueError):
    """Configuration file or setting is invalid"""
