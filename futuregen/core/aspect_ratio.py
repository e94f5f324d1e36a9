"""Mapping of arbitrary image dimensions onto the supported aspect ratios."""

from typing import List, Optional, Tuple

from ..models.enums import AspectRatio

# Order matters: on an exact tie the earlier entry wins
SUPPORTED_RATIOS: List[Tuple[AspectRatio, float]] = [
    (AspectRatio.SQUARE, 1.0),
    (AspectRatio.PORTRAIT, 0.75),
    (AspectRatio.LANDSCAPE, 1.33),
    (AspectRatio.WIDE_PORTRAIT, 0.5625),
    (AspectRatio.WIDE_LANDSCAPE, 1.77),
]

FALLBACK_RATIO = AspectRatio.SQUARE


def resolve_closest(width: int, height: int) -> AspectRatio:
    """Return the supported ratio closest to width / height."""
    ratio = width / height

    best, best_value = SUPPORTED_RATIOS[0]
    for candidate, value in SUPPORTED_RATIOS[1:]:
        if abs(value - ratio) < abs(best_value - ratio):
            best, best_value = candidate, value
    return best


def resolve_aspect_ratio(
    requested: AspectRatio,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> AspectRatio:
    """
    Turn the requested ratio into one the remote service accepts.

    SAME_AS_SOURCE is resolved from the source dimensions, or falls back to
    1:1 when they are unknown. Never raises.
    """
    requested = AspectRatio(requested)
    if requested is not AspectRatio.SAME_AS_SOURCE:
        return requested

    if width and height and width > 0 and height > 0:
        return resolve_closest(width, height)

    return FALLBACK_RATIO
