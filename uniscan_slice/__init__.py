"""Slice a textured OBJ mesh into a cube grid with per-tile repacked atlases."""

from .mesh import CubeGrid
from .pipeline import CubeManager, SlicingOptions, slice_mesh

__all__ = ["CubeGrid", "CubeManager", "SlicingOptions", "slice_mesh"]
