"""PillowEncoder tests."""

import stat
from concurrent.futures import ThreadPoolExecutor

import pytest
from PIL import Image as PILImage

from cimaise.models.image_variant import ImageFormat
from cimaise.services.exceptions import SourceImageError
from cimaise.services.imaging.encoder import MEDIA_FILE_MODE, PillowEncoder


@pytest.fixture
def source_file(app_settings, source_jpeg):
    return app_settings.storage_base_dir / source_jpeg.lstrip("/")


def test_concurrent_renders_of_one_destination(source_file, tmp_path):
    """Threads rendering the same target never clobber each other's temp file.

    Scenario:
    1. 8 threads x 5 rounds render the same destination
    2. Assert no render raised, the final file is a valid image
    3. Assert no temp files are left behind
    """
    encoder = PillowEncoder()
    destination = tmp_path / "media" / "1_sm.jpg"

    def _render(_):
        return encoder.render(source_file, destination, 1200, ImageFormat.JPG, 95)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_render, range(40)))

    assert all(r.width == 1200 for r in results)
    with PILImage.open(destination) as img:
        assert img.size == (1200, 750)
    assert [p.name for p in destination.parent.iterdir()] == ["1_sm.jpg"]


def test_rendered_file_is_world_readable(source_file, tmp_path):
    destination = tmp_path / "media" / "1_md.webp"

    PillowEncoder().render(source_file, destination, 800, ImageFormat.WEBP, 75)

    assert stat.S_IMODE(destination.stat().st_mode) == MEDIA_FILE_MODE


def test_missing_source_raises(tmp_path):
    with pytest.raises(SourceImageError):
        PillowEncoder().render(tmp_path / "nope.jpg", tmp_path / "out.jpg", 400, ImageFormat.JPG, 85)
