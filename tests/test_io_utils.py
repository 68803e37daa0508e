from __future__ import annotations

import io
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("PIL.Image")
from PIL import Image  # noqa: E402  # pylint: disable=wrong-import-position

from portrait_enhancer import io_utils  # noqa: E402  # pylint: disable=wrong-import-position
from portrait_enhancer.errors import EncodingFailure, EnhancementError  # noqa: E402  # pylint: disable=wrong-import-position


def test_source_bitmap_open_reads_dimensions_and_name(tmp_path: Path):
    path = tmp_path / "studio.png"
    Image.new("RGB", (7, 3), color=(1, 2, 3)).save(path)

    with io_utils.SourceBitmap.open(path) as bitmap:
        assert (bitmap.width, bitmap.height) == (7, 3)
        assert bitmap.name == "studio"

    assert bitmap.closed


def test_source_bitmap_open_rejects_non_images(tmp_path: Path):
    path = tmp_path / "notes.jpg"
    path.write_bytes(b"definitely not a jpeg")

    with pytest.raises(EnhancementError, match="Could not load"):
        io_utils.SourceBitmap.open(path)


def test_source_bitmap_close_is_idempotent():
    bitmap = io_utils.SourceBitmap.from_array(np.zeros((2, 2, 3), dtype=np.uint8))

    bitmap.close()
    bitmap.close()

    assert bitmap.closed
    with pytest.raises(ValueError):
        _ = bitmap.width


@pytest.mark.parametrize(("quality", "level"), [(0.94, 94), (1.0, 100), (0.001, 1)])
def test_jpeg_quality_level_maps_unit_scale(quality: float, level: int):
    assert io_utils.jpeg_quality_level(quality) == level


def test_encode_jpeg_round_trips_dimensions():
    buffer = np.full((3, 5, 4), 64, dtype=np.uint8)

    payload = io_utils.encode_jpeg(buffer)

    with Image.open(io.BytesIO(payload)) as image:
        assert image.format == "JPEG"
        assert image.size == (5, 3)


def test_encode_jpeg_wraps_pillow_errors(monkeypatch: pytest.MonkeyPatch):
    def broken_save(self, *args, **kwargs):
        raise OSError("encoder unavailable")

    monkeypatch.setattr(Image.Image, "save", broken_save)

    with pytest.raises(EncodingFailure, match="encoder unavailable"):
        io_utils.encode_jpeg(np.zeros((2, 2, 4), dtype=np.uint8))


def test_default_output_path_appends_enhanced_suffix(tmp_path: Path):
    assert io_utils.default_output_path(tmp_path / "sunset.png") == tmp_path / "sunset-enhanced.jpg"


def test_processing_context_cleanup_on_failure(tmp_path: Path):
    destination = tmp_path / "portrait-enhanced.jpg"
    destination.write_bytes(b"previous-export")

    class Boom(RuntimeError):
        pass

    with pytest.raises(Boom):
        with io_utils.ProcessingContext(destination) as staged:
            staged.write_bytes(b"partial")
            raise Boom("simulated failure")

    assert destination.read_bytes() == b"previous-export"
    assert not list(tmp_path.glob(f".{destination.name}.tmp*"))


def test_processing_context_replaces_on_success(tmp_path: Path):
    destination = tmp_path / "nested" / "portrait-enhanced.jpg"

    with io_utils.ProcessingContext(destination) as staged:
        staged.write_bytes(b"fresh")

    assert destination.read_bytes() == b"fresh"
