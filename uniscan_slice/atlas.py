"""Per-tile texture atlas repacking and UV remapping."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from .binpack import PixelRect, pack_rects, starting_size, used_size
from .islands import UVRect, find_connected_faces, find_uv_rectangles
from .mesh import Face, Mesh

log = logging.getLogger(__name__)

PIXEL_PADDING = 3
MATERIAL_NAME = "material_0"


@dataclass(slots=True, frozen=True)
class RectangleTransform:
    """Moves UVs from an island's rectangle in the source image to the atlas.

    Edges are normalized to the source image with v pointing up, so
    `top > bottom`. Offsets are source position minus destination position
    (each normalized by its own image), scales are source size over atlas
    size.
    """

    top: float
    bottom: float
    left: float
    right: float
    offset_x: float
    offset_y: float
    scale_x: float
    scale_y: float

    def contains(self, u: float, v: float) -> bool:
        return self.left <= u <= self.right and self.bottom <= v <= self.top

    def apply(self, u: float, v: float) -> Tuple[float, float]:
        # left - offset_x is the atlas-space left edge; the v axis is
        # flipped relative to pixel rows, hence the sign change on offset_y.
        nu = (u - self.left) * self.scale_x + (self.left - self.offset_x)
        nv = (v - self.top) * self.scale_y + (self.top + self.offset_y)
        return (nu, nv)

    def source_box(self, size: Tuple[int, int]) -> Tuple[int, int, int, int]:
        w, h = size
        return (
            int(round(self.left * w)),
            int(round((1.0 - self.top) * h)),
            int(round(self.right * w)),
            int(round((1.0 - self.bottom) * h)),
        )


class SourceTexture:
    """The shared source image. Tile workers clone it under a lock."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"texture file not found: {self.path}")
        with Image.open(self.path) as img:
            self._image = img.convert("RGB")
        self._lock = threading.Lock()

    @property
    def size(self) -> Tuple[int, int]:
        return self._image.size

    def clone(self) -> Image.Image:
        with self._lock:
            return self._image.copy()


def uv_rects_to_pixels(rects: Sequence[UVRect], size: Tuple[int, int], pad: int = PIXEL_PADDING) -> List[PixelRect]:
    """Convert UV rectangles to padded pixel rectangles (rows grow downward)."""

    w, h = size
    out: List[PixelRect] = []
    for r in rects:
        out.append(
            PixelRect(
                x=int(r.u_min * w) - pad,
                y=int((1.0 - r.v_max) * h) - pad,
                width=int(r.width * w) + pad * 2,
                height=int(r.height * h) + pad * 2,
            )
        )
    return out


def generate_uv_transforms(
    original_size: Tuple[int, int],
    new_size: Tuple[int, int],
    source_rects: Sequence[PixelRect],
    destination_rects: Sequence[PixelRect],
) -> List[RectangleTransform]:
    ow, oh = (float(original_size[0]), float(original_size[1]))
    nw, nh = (float(new_size[0]), float(new_size[1]))
    out: List[RectangleTransform] = []
    for s, d in zip(source_rects, destination_rects):
        out.append(
            RectangleTransform(
                top=1.0 - s.y / oh,
                bottom=1.0 - s.bottom / oh,
                left=s.x / ow,
                right=s.right / ow,
                offset_x=s.x / ow - d.x / nw,
                offset_y=s.y / oh - d.y / nh,
                scale_x=ow / nw,
                scale_y=oh / nh,
            )
        )
    return out


def compose_atlas(
    source: Image.Image,
    new_size: Tuple[int, int],
    source_rects: Sequence[PixelRect],
    destination_rects: Sequence[PixelRect],
) -> Image.Image:
    packed = Image.new(source.mode, (int(new_size[0]), int(new_size[1])))
    for s, d in zip(source_rects, destination_rects):
        # crop() zero-fills the parts of the padded box outside the source.
        packed.paste(source.crop(s.as_box()), (d.x, d.y))
    return packed


def save_jpeg(img: Image.Image, path: str | Path) -> Path:
    out_path = Path(path)
    if out_path.parent:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    if img.mode != "RGB":
        img = img.convert("RGB")
    img.save(out_path, format="JPEG", quality=95)
    return out_path


def write_atlas(
    path: str | Path,
    source: Image.Image,
    new_size: Tuple[int, int],
    source_rects: Sequence[PixelRect],
    destination_rects: Sequence[PixelRect],
    *,
    scale: float = 1.0,
) -> Path:
    packed = compose_atlas(source, new_size, source_rects, destination_rects)
    if scale != 1.0:
        w = max(1, int(packed.width * scale))
        h = max(1, int(packed.height * scale))
        packed = packed.resize((w, h), Image.Resampling.LANCZOS)
    return save_jpeg(packed, path)


def write_mtl(texture_path: str | Path, mtl_path: str | Path) -> Path:
    """Write a material whose diffuse map is the atlas next to it."""

    out_path = Path(mtl_path)
    if out_path.parent:
        out_path.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        "# Generated by uniscan-slice",
        f"newmtl {MATERIAL_NAME}",
        "Ka 0.200000 0.200000 0.200000",
        "Kd 0.000000 0.000000 0.000000",
        "Ks 1.000000 1.000000 1.000000",
        "Tr 0.000000",
        "illum 2",
        "Ns 0.000000",
        f"map_Kd {Path(texture_path).name}",
    ]
    out_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return out_path


@dataclass(slots=True)
class TilePacking:
    original_size: Tuple[int, int]
    new_size: Tuple[int, int]
    source_rects: List[PixelRect]
    destination_rects: List[PixelRect]

    @property
    def transforms(self) -> List[RectangleTransform]:
        return generate_uv_transforms(self.original_size, self.new_size, self.source_rects, self.destination_rects)


def pack_tile(mesh: Mesh, faces: Sequence[Face], original_size: Tuple[int, int]) -> TilePacking | None:
    """Islands -> rectangles -> packed layout. None when nothing is textured."""

    islands = find_connected_faces(faces)
    if not islands:
        return None
    uv_rects = find_uv_rectangles(islands, mesh.uvs)
    source_rects = uv_rects_to_pixels(uv_rects, original_size)

    sizes = [(r.width, r.height) for r in source_rects]
    start = starting_size(sizes)
    placed, _, _ = pack_rects(sizes, start, start)
    return TilePacking(
        original_size=original_size,
        new_size=used_size(placed),
        source_rects=source_rects,
        destination_rects=placed,
    )


def build_tile_atlas(
    mesh: Mesh,
    faces: Sequence[Face],
    source: SourceTexture,
    output_path: str | Path,
    *,
    scale: float = 1.0,
    mtl: bool = False,
) -> List[RectangleTransform]:
    """Write the repacked atlas for one tile and return its UV transforms."""

    if not faces:
        return []

    image = source.clone()
    packing = pack_tile(mesh, faces, image.size)
    if packing is None:
        log.info("No textured faces; no texture generated for %s", output_path)
        return []

    write_atlas(
        output_path,
        image,
        packing.new_size,
        packing.source_rects,
        packing.destination_rects,
        scale=scale,
    )
    if mtl:
        write_mtl(output_path, Path(output_path).with_suffix(".mtl"))
    return packing.transforms


def remap_uvs(
    mesh: Mesh,
    faces: Sequence[Face],
    transforms: Sequence[RectangleTransform],
) -> Dict[int, Tuple[float, float]]:
    """New coordinates for every UV index used by `faces`.

    Each UV goes through the first transform whose source rectangle holds
    it. UVs outside every rectangle are left out of the result.
    """

    out: Dict[int, Tuple[float, float]] = {}
    missed = 0
    for face in faces:
        for ti in face.uv_indices:
            if ti in out:
                continue
            u, v = mesh.uv(ti)
            for t in transforms:
                if t.contains(u, v):
                    out[ti] = t.apply(u, v)
                    break
            else:
                missed += 1
    if missed:
        log.warning("%d texture vertices fell outside every packed rectangle", missed)
    return out


def _uv_to_pixel(uv: np.ndarray, size: Tuple[int, int]) -> List[Tuple[float, float]]:
    w, h = size
    return [(float(u) * w, (1.0 - float(v)) * h) for u, v in uv]


def markup_texture_faces(mesh: Mesh, texture_path: str | Path, output_path: str | Path | None = None) -> Path:
    """Copy the texture with every face's UV polygon outlined in red."""

    texture_path = Path(texture_path)
    if output_path is None:
        output_path = texture_path.with_name(texture_path.stem + "_debug.jpg")
    with Image.open(texture_path) as img:
        out = img.convert("RGB")
    draw = ImageDraw.Draw(out)
    for face in mesh.faces:
        if not face.textured:
            continue
        coords = mesh.uvs[np.asarray(face.uv_indices, dtype=np.int64) - 1]
        draw.polygon(_uv_to_pixel(coords, out.size), outline=(255, 0, 0))
    return save_jpeg(out, output_path)


def markup_texture_transforms(
    source: SourceTexture,
    transforms: Sequence[RectangleTransform],
    output_path: str | Path,
) -> Path:
    """Copy the texture with each island's source rectangle outlined."""

    out = source.clone()
    draw = ImageDraw.Draw(out)
    for t in transforms:
        draw.rectangle(t.source_box(out.size), outline=(255, 0, 0), width=10)
    return save_jpeg(out, output_path)
