"""Uniform grid tiling of a standalone image."""

from __future__ import annotations

from pathlib import Path
from typing import List

from PIL import Image

from .atlas import save_jpeg


class ImageTiler:
    def __init__(self, path: str | Path, tiles_x: int, tiles_y: int) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"image file not found: {self.path}")
        if tiles_x < 1 or tiles_y < 1:
            raise ValueError("tile counts must be >= 1")
        self.tiles_x = int(tiles_x)
        self.tiles_y = int(tiles_y)

    def generate_tiles(self, output_path: str | Path) -> List[Path]:
        """Crop the image into tiles_x * tiles_y equal tiles named `<x>_<y>.jpg`.

        Remainder pixels on the right and bottom edges are dropped.
        """

        output = Path(output_path)
        output.mkdir(parents=True, exist_ok=True)
        with Image.open(self.path) as img:
            image = img.convert("RGB")

        tile_w = image.width // self.tiles_x
        tile_h = image.height // self.tiles_y
        written: List[Path] = []
        for x in range(self.tiles_x):
            for y in range(self.tiles_y):
                box = (x * tile_w, y * tile_h, (x + 1) * tile_w, (y + 1) * tile_h)
                written.append(save_jpeg(image.crop(box), output / f"{x}_{y}.jpg"))
        return written
