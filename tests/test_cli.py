from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pytest

try:
    from .documentation import documents
except ImportError:  # pragma: no cover - fallback for direct execution
    from tests.documentation import documents

pytest.importorskip("numpy")
pytest.importorskip("PIL.Image")
from PIL import Image  # noqa: E402  # pylint: disable=wrong-import-position

import portrait_enhancer as pe  # noqa: E402  # pylint: disable=wrong-import-position

ROOT = Path(__file__).resolve().parent.parent


def _create_sample_image(path: Path, size=(4, 4)) -> None:
    Image.new("RGB", size, color=(120, 96, 80)).save(path)


def test_module_entry_point_invokable():
    result = subprocess.run(
        [sys.executable, "-m", "portrait_enhancer", "--help"],
        capture_output=True,
        text=True,
        check=False,
        cwd=ROOT,
    )

    assert result.returncode == 0
    assert "Enhance a photo" in result.stdout


def test_parse_args_sets_default_output(tmp_path: Path):
    args = pe.parse_args([str(tmp_path / "headshot.png")])

    assert args.output == tmp_path / "headshot-enhanced.jpg"
    assert args.profile == pe.DEFAULT_PROFILE_NAME


@documents("Command-line overrides layer on top of the default look")
def test_build_parameters_applies_overrides(tmp_path: Path):
    args = pe.parse_args(
        [str(tmp_path / "in.png"), "--clarity", "0.4", "--temperature", "-25", "--resolution-boost", "2"]
    )

    params = pe.build_parameters(args)

    assert params.clarity == pytest.approx(0.4)
    assert params.temperature == pytest.approx(-25)
    assert params.resolution_boost == pytest.approx(2.0)
    assert params.shadow_lift == pe.DEFAULT_PARAMETERS.shadow_lift


def test_build_parameters_rejects_invalid_override(tmp_path: Path):
    args = pe.parse_args([str(tmp_path / "in.png"), "--shadow-lift", "-0.5"])

    with pytest.raises(ValueError):
        pe.build_parameters(args)


def test_config_file_supplies_defaults_and_flags_win(tmp_path: Path):
    config = tmp_path / "look.json"
    config.write_text(json.dumps({"clarity": 0.35, "highlight-recover": 0.3, "profile": "balanced"}))

    args = pe.parse_args([str(tmp_path / "in.png"), "--config", str(config), "--clarity", "0.1"])
    params = pe.build_parameters(args)

    assert args.profile == "balanced"
    assert params.clarity == pytest.approx(0.1)
    assert params.highlight_recover == pytest.approx(0.3)


def test_yaml_config_is_supported(tmp_path: Path):
    config = tmp_path / "look.yaml"
    config.write_text("smoothness: 0.25\noverwrite: yes\n")

    args = pe.parse_args([str(tmp_path / "in.png"), "--config", str(config)])

    assert args.smoothness == pytest.approx(0.25)
    assert args.overwrite is True


def test_unknown_config_option_is_rejected(tmp_path: Path):
    config = tmp_path / "look.json"
    config.write_text(json.dumps({"vibrance": 0.2}))

    with pytest.raises(SystemExit):
        pe.parse_args([str(tmp_path / "in.png"), "--config", str(config)])


def test_quality_outside_unit_range_is_rejected(tmp_path: Path):
    with pytest.raises(SystemExit):
        pe.parse_args([str(tmp_path / "in.png"), "--quality", "1.5"])


def test_main_writes_enhanced_jpeg(tmp_path: Path):
    source = tmp_path / "portrait.png"
    _create_sample_image(source)

    assert pe.main([str(source)]) == 0

    destination = tmp_path / "portrait-enhanced.jpg"
    with Image.open(destination) as image:
        assert image.format == "JPEG"
        assert image.size == (5, 5)


def test_run_enhancement_skips_existing_output(tmp_path: Path):
    source = tmp_path / "portrait.png"
    _create_sample_image(source)
    destination = tmp_path / "portrait-enhanced.jpg"
    destination.write_bytes(b"keep-me")

    args = pe.parse_args([str(source)])

    assert pe.run_enhancement(args) == 0
    assert destination.read_bytes() == b"keep-me"

    args = pe.parse_args([str(source), "--overwrite"])
    assert pe.run_enhancement(args) == 1
    assert destination.read_bytes()[:2] == b"\xff\xd8"


def test_dry_run_creates_no_output(tmp_path: Path):
    source = tmp_path / "portrait.png"
    _create_sample_image(source)

    args = pe.parse_args([str(source), str(tmp_path / "out.jpg"), "--dry-run"])

    assert pe.run_enhancement(args) == 0
    assert not (tmp_path / "out.jpg").exists()


def test_run_enhancement_rejects_missing_input(tmp_path: Path):
    args = pe.parse_args([str(tmp_path / "missing.png")])

    with pytest.raises(SystemExit):
        pe.run_enhancement(args)


def test_main_reports_unreadable_input(tmp_path: Path):
    source = tmp_path / "broken.jpg"
    source.write_bytes(b"not an image")

    assert pe.main([str(source)]) == 1
    assert not (tmp_path / "broken-enhanced.jpg").exists()


def test_main_reports_pixel_budget_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    source = tmp_path / "portrait.png"
    _create_sample_image(source, size=(8, 8))
    tiny = pe.ProcessingProfile(name="quality", workers=1, max_pixels=64, preview_long_edge=8, jpeg_quality=0.9)
    monkeypatch.setitem(pe.PROCESSING_PROFILES, "quality", tiny)

    assert pe.main([str(source)]) == 1
