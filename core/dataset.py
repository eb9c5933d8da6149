# core/dataset.py

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union
import numpy as np

from core.exceptions import DimensionMismatch, DuplicateIdentifier, QueryNotFound


@dataclass(frozen=True, eq=False)
class Entry:
    """Identifier paired with its feature vector"""
    identifier: str
    vector: np.ndarray

    @classmethod
    def create(cls, identifier: str, vector) -> 'Entry':
        """Build an entry, coercing the vector to a flat float64 array"""
        vector = np.asarray(vector, dtype=np.float64).ravel()
        # NaN scores would break the sort order for every other entry
        if not np.isfinite(vector).all():
            raise ValueError(f"Non-finite feature value in entry {identifier}")
        return cls(str(identifier), vector)


class Dataset:
    """
    Ordered, read-only collection of entries keyed by identifier
    """

    def __init__(self, entries: Iterable[Entry] = ()):
        self._entries: List[Entry] = []
        self._by_id: Dict[str, Entry] = {}

        for entry in entries:
            if entry.identifier in self._by_id:
                raise DuplicateIdentifier(entry.identifier)
            self._entries.append(entry)
            self._by_id[entry.identifier] = entry

    @classmethod
    def from_pairs(cls, pairs: Iterable[Union[Entry, Tuple[str, Iterable[float]]]]) -> 'Dataset':
        """
        Build a dataset from (identifier, vector) pairs or Entry objects

        Args:
            pairs: Iterable of entries or two-element tuples

        Returns:
            Dataset preserving the input order
        """
        entries = []
        for item in pairs:
            if isinstance(item, Entry):
                entries.append(item)
            else:
                identifier, vector = item
                entries.append(Entry.create(identifier, vector))
        return cls(entries)

    @property
    def dimension(self) -> Optional[int]:
        """Vector length of the first entry"""
        if not self._entries:
            return None
        return len(self._entries[0].vector)

    def get(self, identifier: str) -> Entry:
        """Look up an entry, raising QueryNotFound on a miss"""
        try:
            return self._by_id[identifier]
        except KeyError:
            raise QueryNotFound(identifier) from None

    def validate(self):
        """Check that every vector has the same length"""
        expected = self.dimension
        for entry in self._entries:
            if len(entry.vector) != expected:
                raise DimensionMismatch(expected, len(entry.vector),
                                        f"entry {entry.identifier}")

    @property
    def identifiers(self) -> List[str]:
        return [entry.identifier for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __contains__(self, identifier) -> bool:
        return identifier in self._by_id

    def __repr__(self) -> str:
        return f"Dataset(size={len(self)}, dimension={self.dimension})"
