"""
Feature file utilities
"""

import csv
import logging
from pathlib import Path
from typing import List
import numpy as np

from core.dataset import Dataset, Entry
from core.exceptions import FeatureFileError

logger = logging.getLogger(__name__)


def read_feature_csv(path: str) -> Dataset:
    """
    Read a feature CSV into a validated dataset

    Each row holds an image filename followed by its feature values.

    Args:
        path: Path to the CSV file

    Returns:
        Dataset in file order
    """
    csv_path = Path(path)
    if not csv_path.is_file():
        raise FeatureFileError(f"Can not read the image csv file: {path}")

    entries: List[Entry] = []
    try:
        with open(csv_path, 'r', newline='', encoding='utf-8') as f:
            reader = csv.reader(f)
            for row in reader:
                cells = [cell.strip() for cell in row]
                while cells and not cells[-1]:
                    cells.pop()
                if not cells:
                    continue

                try:
                    values = np.array([float(cell) for cell in cells[1:]], dtype=np.float64)
                except ValueError as e:
                    raise FeatureFileError(f"{path}:{reader.line_num}: {e}") from e
                if not np.isfinite(values).all():
                    raise FeatureFileError(
                        f"{path}:{reader.line_num}: non-finite feature value for {cells[0]}"
                    )
                entries.append(Entry.create(cells[0], values))
    except (UnicodeDecodeError, csv.Error, OSError) as e:
        raise FeatureFileError(f"Can not read the image csv file: {path} ({e})") from e

    dataset = Dataset(entries)
    dataset.validate()

    logger.info(f"Loaded {len(dataset)} feature vectors "
                f"(dimension {dataset.dimension}) from {path}")
    return dataset


def write_feature_csv(path: str, dataset: Dataset):
    """Write a dataset in the layout read_feature_csv expects"""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        for entry in dataset:
            writer.writerow([entry.identifier] + [repr(float(v)) for v in entry.vector])
