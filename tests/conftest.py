# tests/conftest.py

import logging
import pytest
from core.dataset import Dataset


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging during a test"""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, '_matcher_handler', False):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def ssd_dataset():
    """Three two-dimensional points for SSD ranking"""
    return Dataset.from_pairs([
        ("A", [0, 0]),
        ("B", [1, 1]),
        ("C", [5, 5]),
    ])


@pytest.fixture
def histogram_dataset():
    """Three normalized two-bin histograms"""
    return Dataset.from_pairs([
        ("A", [0.5, 0.5]),
        ("B", [0.4, 0.6]),
        ("C", [0.1, 0.9]),
    ])


@pytest.fixture
def feature_csv(tmp_path):
    """Write a small feature file and return its path"""
    def _write(content: str, name: str = "features.csv") -> str:
        path = tmp_path / name
        path.write_text(content)
        return str(path)
    return _write
