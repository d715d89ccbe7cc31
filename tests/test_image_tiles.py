import numpy as np
import pytest
from PIL import Image

from uniscan_slice.image_tiles import ImageTiler


def test_generate_tiles(tmp_path, texture_path):
    written = ImageTiler(texture_path, 2, 2).generate_tiles(tmp_path / "tiles")
    assert sorted(p.name for p in written) == ["0_0.jpg", "0_1.jpg", "1_0.jpg", "1_1.jpg"]
    with Image.open(tmp_path / "tiles" / "1_0.jpg") as img:
        assert img.size == (32, 32)
        # top right quadrant of the fixture is green
        r, g, b = np.asarray(img.convert("RGB"))[16, 16]
        assert g > 200 and r < 60 and b < 60


def test_remainder_pixels_are_dropped(tmp_path):
    path = tmp_path / "odd.jpg"
    Image.new("RGB", (10, 7), (10, 20, 30)).save(path, format="JPEG")
    written = ImageTiler(path, 3, 2).generate_tiles(tmp_path / "tiles")
    assert len(written) == 6
    with Image.open(written[0]) as img:
        assert img.size == (3, 3)


def test_missing_image(tmp_path):
    with pytest.raises(FileNotFoundError):
        ImageTiler(tmp_path / "missing.jpg", 1, 1)
