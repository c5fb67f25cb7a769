"""
Visualization utilities for fiducial marker detection.
"""

from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import cv2
import numpy as np

if TYPE_CHECKING:
    from services.pipeline.steps.marker_detection.context import CornerRoles, Marker

# RGB, converted to the frame's channel order when drawing
COLOR_SUCCESS = (34, 197, 94)
COLOR_SEARCHING = (59, 130, 246)

MARKER_DOT_RADIUS = 10
LABEL_OFFSET_X = 15
QUAD_THICKNESS = 3

SHAPE_LABELS = {'CIRCLE': 'C', 'SQUARE': 'S'}


def to_frame_color(rgb: Tuple[int, int, int], channels: int, color_order: str) -> Tuple[int, ...]:
    """Convert an RGB colour to a drawing colour for the target frame layout."""
    color = tuple(rgb) if color_order == 'rgb' else tuple(reversed(rgb))
    if channels == 4:
        color = color + (255,)
    return color


def marker_label(marker: 'Marker') -> str:
    return SHAPE_LABELS.get(marker.shape.value, '?')


def visualize_markers(
    canvas: np.ndarray,
    markers: Sequence['Marker'],
    color: Tuple[int, ...]
) -> np.ndarray:
    """Draw a filled dot and a one-letter shape label at each marker, in place."""
    for marker in markers:
        point = (int(round(marker.center.x)), int(round(marker.center.y)))
        cv2.circle(canvas, point, MARKER_DOT_RADIUS, color, -1)
        cv2.putText(canvas, marker_label(marker), (point[0] + LABEL_OFFSET_X, point[1]),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
    return canvas


def visualize_strip_quad(
    canvas: np.ndarray,
    corners: 'CornerRoles',
    color: Tuple[int, ...]
) -> np.ndarray:
    """Draw the closed TL -> TR -> BR -> BL outline, in place."""
    pts = np.array([[int(round(x)), int(round(y))] for x, y in corners.as_polygon()], dtype=np.int32)
    cv2.polylines(canvas, [pts.reshape(-1, 1, 2)], True, color, QUAD_THICKNESS)
    return canvas


def draw_marker_feedback(
    canvas: np.ndarray,
    markers: List['Marker'],
    is_aligned: bool,
    corners: Optional['CornerRoles'] = None,
    color_order: str = 'bgr'
) -> np.ndarray:
    """
    Annotate a 3 or 4 channel frame with detection feedback.

    Markers are drawn green when the strip is aligned and blue otherwise;
    an aligned strip also gets its corner quad outlined in green.

    Args:
        canvas: Frame copy to draw on (modified in place)
        markers: Accepted markers
        is_aligned: Alignment verdict
        corners: Role-assigned corners (required for the quad outline)
        color_order: 'bgr' or 'rgb' channel order of the canvas

    Returns:
        The annotated canvas
    """
    channels = canvas.shape[2]
    success = to_frame_color(COLOR_SUCCESS, channels, color_order)
    marker_color = success if is_aligned else to_frame_color(COLOR_SEARCHING, channels, color_order)

    visualize_markers(canvas, markers, marker_color)
    if is_aligned and corners is not None:
        visualize_strip_quad(canvas, corners, success)
    return canvas
