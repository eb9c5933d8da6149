"""
Image display utilities for match results
"""

import cv2
import numpy as np
from pathlib import Path
from typing import List, Optional

from config import DisplayConfig


def load_tile(image_path: str, tile_size: int = 256) -> np.ndarray:
    """Load an image and letterbox it onto a square black tile"""
    img = cv2.imread(str(image_path))

    if img is None:
        raise ValueError(f"Cannot load image: {image_path}")

    h, w = img.shape[:2]
    scale = min(tile_size / w, tile_size / h)
    new_w = max(1, int(w * scale))
    new_h = max(1, int(h * scale))
    resized = cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_AREA)

    tile = np.zeros((tile_size, tile_size, 3), dtype=np.uint8)
    top = (tile_size - new_h) // 2
    left = (tile_size - new_w) // 2
    tile[top:top + new_h, left:left + new_w] = resized
    return tile


def build_gallery(image_paths: List[str],
                  tile_size: int = 256,
                  columns: int = 4) -> np.ndarray:
    """
    Tile images into a single gallery image, row-major

    Args:
        image_paths: Images in display order
        tile_size: Edge length of each square tile
        columns: Tiles per row

    Returns:
        BGR image of shape (rows * tile_size, columns * tile_size, 3)
    """
    if not image_paths:
        raise ValueError("No images to display")

    columns = max(1, min(columns, len(image_paths)))
    rows = -(-len(image_paths) // columns)
    gallery = np.zeros((rows * tile_size, columns * tile_size, 3), dtype=np.uint8)

    for i, path in enumerate(image_paths):
        r, c = divmod(i, columns)
        gallery[r * tile_size:(r + 1) * tile_size,
                c * tile_size:(c + 1) * tile_size] = load_tile(path, tile_size)

    return gallery


def resolve_image_paths(identifiers: List[str],
                        image_root: Optional[str] = None) -> List[str]:
    """Map dataset identifiers to image paths"""
    if image_root is None:
        return list(identifiers)
    return [str(Path(image_root) / identifier) for identifier in identifiers]


def show_matches(target_path: str,
                 match_paths: List[str],
                 config: Optional[DisplayConfig] = None):
    """Show the target image and the gallery of matches"""
    config = config or DisplayConfig()

    cv2.imshow("target", load_tile(target_path, config.tile_size))
    if match_paths:
        cv2.imshow(config.window_title,
                   build_gallery(match_paths, config.tile_size, config.columns))
    cv2.waitKey(0)
    cv2.destroyAllWindows()
