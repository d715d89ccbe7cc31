"""UV island detection and island bounding rectangles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from .mesh import Face

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class UVRect:
    """Axis-aligned rectangle in normalized UV space (v grows upward)."""

    u_min: float
    v_min: float
    u_max: float
    v_max: float

    @property
    def width(self) -> float:
        return self.u_max - self.u_min

    @property
    def height(self) -> float:
        return self.v_max - self.v_min

    def contains(self, other: "UVRect") -> bool:
        return (
            self.u_min <= other.u_min
            and self.v_min <= other.v_min
            and other.u_max <= self.u_max
            and other.v_max <= self.v_max
        )


def find_connected_faces(faces: Sequence[Face]) -> List[List[Face]]:
    """Group faces into islands of faces connected through shared UV indices.

    Union-find keyed on UV index. Islands come out ordered by their first
    face in `faces`, and faces keep their input order within an island.
    Faces without texture coordinates are skipped.
    """

    parent: List[int] = list(range(len(faces)))

    def _find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    def _union(a: int, b: int) -> None:
        ra = _find(a)
        rb = _find(b)
        if ra == rb:
            return
        # Lower index wins so the root is the island's first face.
        if rb < ra:
            ra, rb = rb, ra
        parent[rb] = ra

    owner: Dict[int, int] = {}
    for fidx, face in enumerate(faces):
        for uv in face.uv_indices:
            prev = owner.setdefault(uv, fidx)
            if prev != fidx:
                _union(prev, fidx)

    groups: Dict[int, List[Face]] = {}
    for fidx, face in enumerate(faces):
        if not face.textured:
            continue
        groups.setdefault(_find(fidx), []).append(face)
    return [groups[root] for root in sorted(groups)]


def island_rect(island: Sequence[Face], uvs: np.ndarray) -> UVRect:
    """Bounding rectangle of all distinct UV vertices used by `island`."""

    used = sorted({uv for face in island for uv in face.uv_indices})
    coords = uvs[np.asarray(used, dtype=np.int64) - 1]
    lo = coords.min(axis=0)
    hi = coords.max(axis=0)
    return UVRect(float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1]))


def prune_contained(rects: Sequence[UVRect]) -> List[UVRect]:
    """Drop rectangles fully contained in another island's rectangle.

    Of a group of identical rectangles only the first one is kept.
    Output order follows input order.
    """

    kept: List[UVRect] = []
    for i, rect in enumerate(rects):
        contained = False
        for j, other in enumerate(rects):
            if i == j or not other.contains(rect):
                continue
            if other == rect and j > i:
                continue
            contained = True
            break
        if not contained:
            kept.append(rect)

    if len(kept) < len(rects):
        log.warning("Removed %d obscured rectangles", len(rects) - len(kept))
    return kept


def find_uv_rectangles(islands: Sequence[Sequence[Face]], uvs: np.ndarray) -> List[UVRect]:
    return prune_contained([island_rect(island, uvs) for island in islands])
