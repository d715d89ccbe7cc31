"""MaxRects rectangle packing into power-of-two canvases."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import List, Sequence, Tuple

log = logging.getLogger(__name__)

MAX_ATLAS_SIZE = 16384


class PackingError(ValueError):
    """Raised when rectangles cannot fit under the canvas size ceiling."""


@dataclass(slots=True, frozen=True)
class PixelRect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def intersects(self, other: "PixelRect") -> bool:
        return not (
            self.right <= other.x
            or other.right <= self.x
            or self.bottom <= other.y
            or other.bottom <= self.y
        )

    def contains(self, other: "PixelRect") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def as_box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) as used by PIL."""

        return (self.x, self.y, self.right, self.bottom)


def next_pow2(x: int) -> int:
    x = int(x)
    if x <= 1:
        return 1
    return 1 << (x - 1).bit_length()


class MaxRectsBin:
    """MaxRects bin with best-area-fit placement and no rotation."""

    def __init__(self, width: int, height: int) -> None:
        self.width = int(width)
        self.height = int(height)
        self.free: List[PixelRect] = [PixelRect(0, 0, self.width, self.height)]

    def insert(self, width: int, height: int) -> PixelRect | None:
        best: PixelRect | None = None
        best_area = None
        best_short = None
        for fr in self.free:
            if width > fr.width or height > fr.height:
                continue
            leftover = fr.width * fr.height - width * height
            short = min(fr.width - width, fr.height - height)
            if best_area is None or leftover < best_area or (leftover == best_area and short < best_short):
                best = PixelRect(fr.x, fr.y, int(width), int(height))
                best_area = leftover
                best_short = short
        if best is None:
            return None

        self._split_free(best)
        return best

    def _split_free(self, placed: PixelRect) -> None:
        new_free: List[PixelRect] = []
        for fr in self.free:
            if not fr.intersects(placed):
                new_free.append(fr)
                continue
            if placed.x > fr.x:
                new_free.append(PixelRect(fr.x, fr.y, placed.x - fr.x, fr.height))
            if placed.right < fr.right:
                new_free.append(PixelRect(placed.right, fr.y, fr.right - placed.right, fr.height))
            if placed.y > fr.y:
                new_free.append(PixelRect(fr.x, fr.y, fr.width, placed.y - fr.y))
            if placed.bottom < fr.bottom:
                new_free.append(PixelRect(fr.x, placed.bottom, fr.width, fr.bottom - placed.bottom))
        self.free = _prune(new_free)


def _prune(free: Sequence[PixelRect]) -> List[PixelRect]:
    pruned: List[PixelRect] = []
    for i, a in enumerate(free):
        if a.width <= 0 or a.height <= 0:
            continue
        redundant = False
        for j, b in enumerate(free):
            if i == j or not b.contains(a):
                continue
            # Keep one copy of duplicates.
            if a == b and j > i:
                continue
            redundant = True
            break
        if not redundant:
            pruned.append(a)
    return pruned


def pack_rects(
    sizes: Sequence[Tuple[int, int]],
    width: int,
    height: int,
    *,
    max_size: int = MAX_ATLAS_SIZE,
) -> Tuple[List[PixelRect], int, int]:
    """Place `sizes` in input order, growing the canvas until everything fits.

    On failure the smaller canvas side doubles (both when square) and
    packing restarts. Returns placements and the canvas size that worked.
    """

    started = time.perf_counter()
    log.info("Bin packing %d rectangles", len(sizes))
    width = int(width)
    height = int(height)

    while True:
        if width > max_size or height > max_size:
            raise PackingError(
                f"cannot pack {len(sizes)} rectangles within {max_size}x{max_size}"
            )
        packer = MaxRectsBin(width, height)
        placed: List[PixelRect] = []
        for w, h in sizes:
            rect = packer.insert(int(w), int(h))
            if rect is None:
                break
            placed.append(rect)
        if len(placed) == len(sizes):
            log.info(
                "Bin packing time for %d by %d texture: %.3fs",
                width,
                height,
                time.perf_counter() - started,
            )
            return placed, width, height

        grow_w = width <= height
        grow_h = height <= width
        if grow_w:
            width *= 2
        if grow_h:
            height *= 2


def starting_size(sizes: Sequence[Tuple[int, int]]) -> int:
    total = sum(int(w) * int(h) for w, h in sizes)
    return next_pow2(int(math.sqrt(total)))


def used_size(placed: Sequence[PixelRect]) -> Tuple[int, int]:
    """Tight bounds of the placements, each side rounded up to a power of two."""

    if not placed:
        return 1, 1
    return next_pow2(max(r.right for r in placed)), next_pow2(max(r.bottom for r in placed))
