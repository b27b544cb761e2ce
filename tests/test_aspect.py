from __future__ import annotations

import pytest

from tubely.core.errors import MalformedMedia
from tubely.ingest.aspect import (
    LANDSCAPE_RATIO,
    PORTRAIT_RATIO,
    AspectBands,
    AspectCategory,
    classify_aspect,
)
from tubely.ingest.models import Geometry


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (1920, 1080, AspectCategory.landscape),
        (1280, 720, AspectCategory.landscape),
        (16, 9, AspectCategory.landscape),
        (1080, 1920, AspectCategory.portrait),
        (720, 1280, AspectCategory.portrait),
        (9, 16, AspectCategory.portrait),
        (800, 600, AspectCategory.other),
        (1080, 1080, AspectCategory.other),
        (2560, 1080, AspectCategory.other),
    ],
)
def test_classify_common_geometries(width, height, expected):
    assert classify_aspect(Geometry(width, height)) is expected


def test_near_widescreen_encodes_are_absorbed():
    # 1920x1088 is a common macroblock-aligned encode of 1080p.
    assert classify_aspect(Geometry(1920, 1088)) is AspectCategory.landscape
    assert classify_aspect(Geometry(1088, 1920)) is AspectCategory.portrait


def test_band_edges_are_exclusive():
    bands = AspectBands(landscape_min=0.5, landscape_max=1.0, portrait_min=0.5, portrait_max=1.0)
    # 16/9 sits exactly on the landscape upper bound, so it no longer qualifies.
    assert classify_aspect(Geometry(16, 9), bands) is AspectCategory.other
    assert classify_aspect(Geometry(9, 16), bands) is AspectCategory.other


def test_portrait_band_is_tunable_independently():
    square = Geometry(1000, 1000)
    assert classify_aspect(square) is AspectCategory.other

    wide_portrait = AspectBands(portrait_max=1.95)
    assert 1.0 < PORTRAIT_RATIO * 1.95
    assert classify_aspect(square, wide_portrait) is AspectCategory.portrait
    assert classify_aspect(Geometry(1920, 1080), wide_portrait) is AspectCategory.landscape


def test_landscape_takes_precedence_when_bands_overlap():
    overlapping = AspectBands(portrait_min=0.5, portrait_max=LANDSCAPE_RATIO / PORTRAIT_RATIO * 1.5)
    assert classify_aspect(Geometry(1920, 1080), overlapping) is AspectCategory.landscape


@pytest.mark.parametrize("width, height", [(0, 0), (0, 1080), (1920, 0), (-1920, 1080)])
def test_non_positive_geometry_is_malformed(width, height):
    with pytest.raises(MalformedMedia):
        classify_aspect(Geometry(width, height))


def test_invalid_band_configuration_is_rejected():
    with pytest.raises(ValueError):
        AspectBands(landscape_min=1.1, landscape_max=1.0)
    with pytest.raises(ValueError):
        AspectBands(portrait_min=0.0)
