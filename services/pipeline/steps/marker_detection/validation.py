"""
Validation logic for the detected marker quad.

Provides functions to check a set of markers against the expected strip:
- Corner role assignment (row slicing by y, then x)
- Shape pattern (TL circle, TR square, BL square, BR circle)
- Aspect ratio of the strip (height / width)
"""

import logging
from typing import Dict, List, Optional

from .context import AlignmentCheck, CornerRoles, Marker, MarkerShape, REQUIRED_MARKERS

logger = logging.getLogger(__name__)

EXPECTED_PATTERN = {
    'top_left': MarkerShape.CIRCLE,
    'top_right': MarkerShape.SQUARE,
    'bottom_left': MarkerShape.SQUARE,
    'bottom_right': MarkerShape.CIRCLE,
}


def assign_corner_roles(markers: List[Marker]) -> Optional[CornerRoles]:
    """
    Assign markers to the four strip corners.

    The two smallest-y markers form the top row and the next two the bottom
    row; each row is then ordered by x. Markers beyond the first four by y
    are ignored.

    Args:
        markers: Detected markers in any order

    Returns:
        CornerRoles, or None if fewer than four markers
    """
    if len(markers) < REQUIRED_MARKERS:
        return None

    by_y = sorted(markers, key=lambda m: m.center.y)
    top_row = sorted(by_y[0:2], key=lambda m: m.center.x)
    bottom_row = sorted(by_y[2:4], key=lambda m: m.center.x)

    if len(markers) > REQUIRED_MARKERS:
        logger.debug(f'Ignoring {len(markers) - REQUIRED_MARKERS} extra markers for corner assignment')

    return CornerRoles(
        top_left=top_row[0],
        top_right=top_row[1],
        bottom_left=bottom_row[0],
        bottom_right=bottom_row[1]
    )


def check_shape_pattern(corners: CornerRoles) -> bool:
    """True if every corner carries the expected marker shape."""
    return all(getattr(corners, role).shape == shape for role, shape in EXPECTED_PATTERN.items())


def calculate_aspect_ratio(corners: CornerRoles) -> Optional[float]:
    """
    Calculate the strip's apparent height / width from corner centers.

    Width averages the top and bottom edges, height averages the left and
    right edges.

    Returns:
        Aspect ratio, or None if the width is not positive
    """
    tl, tr = corners.top_left.center, corners.top_right.center
    bl, br = corners.bottom_left.center, corners.bottom_right.center

    width = ((tr.x - tl.x) + (br.x - bl.x)) / 2
    height = ((bl.y - tl.y) + (br.y - tr.y)) / 2
    if width <= 0:
        return None
    return height / width


def check_aspect_ratio(aspect_ratio: Optional[float], min_ratio: float = 1.5, max_ratio: float = 3.0) -> bool:
    """
    Check if the strip aspect ratio is inside the band.

    Both bounds are exclusive.
    """
    if aspect_ratio is None:
        return False
    return min_ratio < aspect_ratio < max_ratio


def validate_alignment(markers: List[Marker], config: Dict) -> Optional[AlignmentCheck]:
    """
    Validate whether the markers describe a correctly framed strip.

    Args:
        markers: Detected markers
        config: Marker detection configuration (aspect ratio band)

    Returns:
        AlignmentCheck with is_aligned, reason and checks_passed, or None if
        fewer than four markers were given
    """
    corners = assign_corner_roles(markers)
    if corners is None:
        return None

    checks = {'shape_pattern': check_shape_pattern(corners)}
    if not checks['shape_pattern']:
        return AlignmentCheck(
            is_aligned=False,
            corners=corners,
            reason='shape_pattern',
            checks_passed=checks
        )

    aspect_ratio = calculate_aspect_ratio(corners)
    checks['aspect_ratio'] = check_aspect_ratio(
        aspect_ratio, config['min_aspect_ratio'], config['max_aspect_ratio']
    )
    if not checks['aspect_ratio']:
        logger.debug(f'Aspect ratio {aspect_ratio} outside expected band')

    return AlignmentCheck(
        is_aligned=checks['aspect_ratio'],
        corners=corners,
        reason='aligned' if checks['aspect_ratio'] else 'aspect_ratio',
        aspect_ratio=aspect_ratio,
        checks_passed=checks
    )
