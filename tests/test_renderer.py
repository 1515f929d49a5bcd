import numpy as np
import pytest

from buddhabrot import (
    CancelToken,
    ConfigurationError,
    DegenerateRunError,
    FixedFractionMapper,
    RenderCancelled,
    RunConfig,
    Viewport,
    draw_pixel,
    rasterize,
    render_buddhabrot,
)
from buddhabrot.renderer import rasterize_pixels


def test_draw_pixel_offsets():
    buffer = bytearray(2 * 2 * 3)
    draw_pixel(buffer, 2, 1, 1, (10, 20, 30))
    draw_pixel(buffer, 2, 1, 0, (1, 2, 3))
    assert buffer == bytearray([0, 0, 0, 1, 2, 3, 0, 0, 0, 10, 20, 30])


def test_rasterize_matches_pixel_by_pixel(accumulated_grid):
    mapper = FixedFractionMapper(accumulated_grid.max_count)
    by_pixel = rasterize_pixels(accumulated_grid, mapper)
    by_array = rasterize(accumulated_grid, mapper)
    assert by_pixel == by_array
    assert len(by_array) == accumulated_grid.width * accumulated_grid.height * 3


def test_raster_layout_is_row_major(accumulated_grid):
    mapper = FixedFractionMapper(accumulated_grid.max_count)
    raster = rasterize(accumulated_grid, mapper)
    width = accumulated_grid.width
    for y in (0, 5, accumulated_grid.height - 1):
        for x in (0, 7, width - 1):
            offset = (y * width + x) * 3
            expected = mapper(int(accumulated_grid.counts[y, x]))
            assert tuple(raster[offset:offset + 3]) == expected
            assert tuple(int(v) for v in accumulated_grid.colors[y, x]) == expected


@pytest.mark.parametrize("backend", ["python", "vectorized"])
def test_small_render_is_reproducible(small_config, backend):
    first = render_buddhabrot(small_config, backend=backend)
    second = render_buddhabrot(small_config, backend=backend)

    assert first.grid.counts.sum() > 0
    np.testing.assert_array_equal(first.grid.counts, second.grid.counts)
    assert first.raster == second.raster
    assert first.stats == second.stats
    assert len(first.raster) == 4 * 4 * 3


@pytest.mark.parametrize("policy", ["percentile", "fixed", "power", "colormap"])
def test_backends_agree(medium_config, policy):
    reference = render_buddhabrot(medium_config, backend="python", policy=policy)
    vectorized = render_buddhabrot(medium_config, backend="vectorized", policy=policy)

    np.testing.assert_array_equal(reference.grid.escapes, vectorized.grid.escapes)
    np.testing.assert_array_equal(reference.grid.counts, vectorized.grid.counts)
    assert reference.stats == vectorized.stats
    assert reference.raster == vectorized.raster


def test_threaded_render_matches_sequential(medium_config):
    sequential = render_buddhabrot(medium_config, backend="python")
    threaded = render_buddhabrot(medium_config, backend="python", workers=4)
    assert sequential.raster == threaded.raster


@pytest.mark.parametrize("policy", ["percentile", "fixed"])
def test_brightest_pixel_is_white(medium_config, policy):
    result = render_buddhabrot(medium_config, policy=policy)
    y, x = np.unravel_index(np.argmax(result.grid.counts), result.grid.counts.shape)
    assert result.mapper(result.stats.max_count) == (255, 255, 255)
    assert tuple(int(v) for v in result.grid.colors[y, x]) == (255, 255, 255)


def test_unvisited_pixels_are_black(medium_config):
    result = render_buddhabrot(medium_config)
    assert not result.grid.colors[result.grid.counts == 0].any()


def test_viewport_without_visits_is_degenerate():
    config = RunConfig(width=6, height=4, max_iterations=20, viewport=Viewport(10.0, 11.0, 10.0, 11.0))
    with pytest.raises(DegenerateRunError):
        render_buddhabrot(config)


def test_unknown_policy_is_rejected(small_config):
    with pytest.raises(ConfigurationError):
        render_buddhabrot(small_config, policy="sepia")


@pytest.mark.parametrize("backend", ["python", "vectorized"])
def test_cancelled_render(small_config, backend):
    token = CancelToken()
    token.cancel()
    with pytest.raises(RenderCancelled):
        render_buddhabrot(small_config, backend=backend, cancel=token)


def test_progress_reports_every_pass(small_config):
    stages = []
    render_buddhabrot(small_config, progress=lambda stage, seconds: stages.append((stage, seconds)))
    assert [stage for stage, _ in stages] == ["classifying", "accumulating", "statistics", "colouring"]
    assert all(seconds >= 0 for _, seconds in stages)
