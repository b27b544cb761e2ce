from __future__ import annotations

import enum
from dataclasses import dataclass

from tubely.core.errors import MalformedMedia

from .models import Geometry

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16


class AspectCategory(str, enum.Enum):
    landscape = "landscape"
    portrait = "portrait"
    other = "other"


@dataclass(frozen=True, slots=True)
class AspectBands:
    """Exclusive tolerance bands, expressed as factors of the reference ratio.

    A ratio is ``landscape`` when ``landscape_min * 16/9 < ratio < landscape_max * 16/9``
    and ``portrait`` when the same holds against 9/16. Each bound is tuned independently.
    """

    landscape_min: float = 0.95
    landscape_max: float = 1.05
    portrait_min: float = 0.95
    portrait_max: float = 1.05

    def __post_init__(self) -> None:
        if not 0 < self.landscape_min < self.landscape_max:
            raise ValueError("landscape band must satisfy 0 < min < max")
        if not 0 < self.portrait_min < self.portrait_max:
            raise ValueError("portrait band must satisfy 0 < min < max")


DEFAULT_ASPECT_BANDS = AspectBands()


def classify_aspect(geometry: Geometry, bands: AspectBands = DEFAULT_ASPECT_BANDS) -> AspectCategory:
    """Map stream geometry to a coarse aspect category.

    Args:
        geometry: Width and height of the video stream.
        bands: Tolerance bands for the landscape and portrait categories.

    Returns:
        The matching category; landscape is tested before portrait.

    Raises:
        MalformedMedia: If either dimension is not strictly positive.
    """
    if not geometry.is_valid:
        raise MalformedMedia(
            "Invalid video dimensions",
            width=geometry.width,
            height=geometry.height,
        )

    ratio = geometry.ratio
    if LANDSCAPE_RATIO * bands.landscape_min < ratio < LANDSCAPE_RATIO * bands.landscape_max:
        return AspectCategory.landscape
    if PORTRAIT_RATIO * bands.portrait_min < ratio < PORTRAIT_RATIO * bands.portrait_max:
        return AspectCategory.portrait
    return AspectCategory.other


__all__ = [
    "AspectCategory",
    "AspectBands",
    "DEFAULT_ASPECT_BANDS",
    "LANDSCAPE_RATIO",
    "PORTRAIT_RATIO",
    "classify_aspect",
]
