from pathlib import Path

import numpy as np
import PIL.Image
import pytest

import buddha

SMALL_ARGS = ["--width", "12", "--height", "8", "--max-iterations", "40", "--no-stats"]


def test_writes_tiff_matching_raster(tmp_path):
    output = tmp_path / "render.tiff"
    assert buddha.main([*SMALL_ARGS, "--output", str(output)]) == 0

    with PIL.Image.open(output) as image:
        assert image.size == (12, 8)
        assert image.mode == "RGB"
        pixels = np.asarray(image)
    assert pixels.shape == (8, 12, 3)
    assert pixels.any()


def test_python_backend_png_output(tmp_path):
    output = tmp_path / "render"
    code = buddha.main([*SMALL_ARGS, "--backend", "python", "--workers", "2", "--format", "png", "--output", str(output)])
    assert code == 0
    with PIL.Image.open(tmp_path / "render.png") as image:
        assert image.format == "PNG"
        assert image.size == (12, 8)


def test_write_raster_round_trips(tmp_path):
    raster = bytes(range(6 * 4 * 3))
    output = tmp_path / "nested" / "raster.tiff"
    buddha.write_raster(raster, 6, 4, output, "tiff")
    with PIL.Image.open(output) as image:
        assert image.convert("RGB").tobytes() == raster


def test_open_failure_has_its_own_exit_code(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    code = buddha.main([*SMALL_ARGS, "--output", str(blocker / "render.tiff")])
    assert code == buddha.EXIT_OPEN_FAILED


def test_degenerate_viewport_exit_code(tmp_path, capsys):
    code = buddha.main([
        *SMALL_ARGS,
        "--real-min", "10", "--real-max", "11", "--imag-min", "10", "--imag-max", "11",
        "--output", str(tmp_path / "empty.tiff"),
    ])
    assert code == buddha.EXIT_DEGENERATE
    assert "Degenerate run" in capsys.readouterr().err
    assert not (tmp_path / "empty.tiff").exists()


def test_prints_statistics_report(tmp_path, capsys):
    args = [a for a in SMALL_ARGS if a != "--no-stats"]
    assert buddha.main([*args, "--output", str(tmp_path / "stats.tiff")]) == 0
    out = capsys.readouterr().out
    assert "Iterations: 40" in out
    assert "Dimensions: 12x8px" in out
    assert "Percentile limits:" in out


@pytest.mark.parametrize(
    "extra",
    [
        ["--output", "render.png"],
        ["--width", "0"],
        ["--real-min", "1", "--real-max", "0"],
        ["--workers", "0"],
        ["--policy", "sepia"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(tmp_path, monkeypatch, extra):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        buddha.main([*SMALL_ARGS, *extra])
    assert excinfo.value.code == 2


@pytest.mark.parametrize("image_format", ["tiff", "png"])
@pytest.mark.parametrize("error", [OSError("disk full"), RuntimeError("tiff codec initialization failed")])
def test_write_failure_has_its_own_exit_code(tmp_path, monkeypatch, image_format, error):
    def failing_save(self, fp, format=None, **params):
        fp.write(b"partial")
        raise error

    monkeypatch.setattr(PIL.Image.Image, "save", failing_save)
    output = tmp_path / f"broken.{image_format}"
    with pytest.raises(buddha.EncodeError) as excinfo:
        buddha.write_raster(bytes(4 * 4 * 3), 4, 4, output, image_format)
    assert excinfo.value.exit_code == buddha.EXIT_WRITE_FAILED
    assert not output.exists()


@pytest.mark.skipif(not Path("/dev/full").exists(), reason="needs /dev/full")
@pytest.mark.parametrize("image_format", ["tiff", "png"])
def test_full_device_is_a_write_failure(image_format):
    with pytest.raises(buddha.EncodeError) as excinfo:
        buddha.write_raster(bytes(4 * 4 * 3), 4, 4, Path("/dev/full"), image_format)
    assert excinfo.value.exit_code == buddha.EXIT_WRITE_FAILED
    assert Path("/dev/full").exists()


def test_main_reports_write_failure(tmp_path, monkeypatch, capsys):
    def failing_save(self, fp, format=None, **params):
        raise OSError("disk full")

    monkeypatch.setattr(PIL.Image.Image, "save", failing_save)
    code = buddha.main([*SMALL_ARGS, "--output", str(tmp_path / "render.tiff")])
    assert code == buddha.EXIT_WRITE_FAILED
    assert "Error writing image" in capsys.readouterr().err


def test_verbose_logs_each_pass(tmp_path, capsys):
    assert buddha.main([*SMALL_ARGS, "--verbose", "--output", str(tmp_path / "render.tiff")]) == 0
    out = capsys.readouterr().out
    for stage in ("classifying", "accumulating", "statistics", "colouring"):
        assert f"{stage} done in" in out
