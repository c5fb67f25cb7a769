"""
Contour steps for fiducial marker detection.

Turns a frame into a binary image, extracts the full contour tree and keeps
the nested pairs that look like a marker outline with a dot inside:
- preprocess: luminance + Gaussian blur
- binarize: inverted adaptive threshold (dark ink becomes foreground)
- extract_contour_tree: RETR_TREE so parent/child links survive
- find_marker_candidates: area gating, shape classification, dedup
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .context import AnalysisBuffers, Marker, MarkerShape, Point

logger = logging.getLogger(__name__)

# Hierarchy row layout from cv2.findContours: [next, previous, first_child, parent]
HIERARCHY_PARENT = 3

SQUARE_VERTICES = 4
MIN_CIRCLE_VERTICES = 7

_GRAY_CONVERSIONS = {
    (3, 'bgr'): cv2.COLOR_BGR2GRAY,
    (3, 'rgb'): cv2.COLOR_RGB2GRAY,
    (4, 'bgr'): cv2.COLOR_BGRA2GRAY,
    (4, 'rgb'): cv2.COLOR_RGBA2GRAY,
}


def frame_channels(frame: np.ndarray) -> int:
    """Number of channels in a frame (1 for 2-D arrays)."""
    return frame.shape[2] if frame.ndim == 3 else 1


def to_grayscale(frame: np.ndarray, color_order: str, dst: np.ndarray) -> np.ndarray:
    """
    Convert a frame to single-channel luminance into ``dst``.

    Args:
        frame: uint8 frame of shape (H, W), (H, W, 1), (H, W, 3) or (H, W, 4)
        color_order: 'bgr' or 'rgb' for 3/4 channel frames
        dst: Preallocated (H, W) uint8 buffer

    Returns:
        The grayscale buffer
    """
    channels = frame_channels(frame)
    if channels == 1:
        np.copyto(dst, frame.reshape(frame.shape[:2]))
        return dst
    return cv2.cvtColor(frame, _GRAY_CONVERSIONS[(channels, color_order)], dst=dst)


def preprocess(frame: np.ndarray, buffers: AnalysisBuffers, config: Dict) -> np.ndarray:
    """Grayscale + blur the frame into the scratch buffers; returns the blurred image."""
    gray = to_grayscale(frame, config['color_order'], buffers.gray)
    k = config['blur_kernel_size']
    return cv2.GaussianBlur(gray, (k, k), 0, dst=buffers.blurred)


def binarize(blurred: np.ndarray, buffers: AnalysisBuffers, config: Dict) -> np.ndarray:
    """Inverted adaptive threshold so printed markers become foreground."""
    return cv2.adaptiveThreshold(
        blurred, 255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY_INV,
        config['threshold_block_size'],
        config['threshold_offset'],
        dst=buffers.binary
    )


def extract_contour_tree(binary: np.ndarray) -> Tuple[Sequence[np.ndarray], Optional[np.ndarray]]:
    """
    Find all contours with full parent/child topology.

    Returns:
        (contours, hierarchy); hierarchy is None when nothing was found
    """
    contours, hierarchy = cv2.findContours(binary, cv2.RETR_TREE, cv2.CHAIN_APPROX_SIMPLE)
    return contours, hierarchy


def shape_from_vertex_count(vertex_count: int) -> MarkerShape:
    """Map an approximated polygon's vertex count to a marker shape."""
    if vertex_count == SQUARE_VERTICES:
        return MarkerShape.SQUARE
    if vertex_count >= MIN_CIRCLE_VERTICES:
        return MarkerShape.CIRCLE
    return MarkerShape.UNKNOWN


def classify_shape(contour: np.ndarray, epsilon_ratio: float) -> MarkerShape:
    """
    Classify a contour by polygon approximation.

    Args:
        contour: Outline contour
        epsilon_ratio: Approximation tolerance as a fraction of the perimeter

    Returns:
        SQUARE for 4 vertices, CIRCLE for more than 6, otherwise UNKNOWN
    """
    perimeter = cv2.arcLength(contour, True)
    approx = cv2.approxPolyDP(contour, epsilon_ratio * perimeter, True)
    return shape_from_vertex_count(len(approx))


def bounding_box_center(contour: np.ndarray) -> Point:
    x, y, w, h = cv2.boundingRect(contour)
    return Point(x + w / 2, y + h / 2)


def is_duplicate(center: Point, markers: List[Marker], radius: float) -> bool:
    """True if ``center`` lies closer than ``radius`` to an accepted marker."""
    return any(center.distance_to(m.center) < radius for m in markers)


def find_marker_candidates(
    contours: Sequence[np.ndarray],
    hierarchy: Optional[np.ndarray],
    config: Dict
) -> List[Marker]:
    """
    Pick out nested contour pairs that form fiducial markers.

    Every contour with a parent is treated as the inner dot and its parent as
    the marker outline. Pairs pass when both areas are in range and the
    outline classifies as a square or circle. Markers come back in contour
    traversal order; a later candidate near an accepted one is dropped.

    Args:
        contours: Contours from extract_contour_tree
        hierarchy: Matching (1, N, 4) hierarchy array, or None
        config: Marker detection configuration

    Returns:
        Accepted markers
    """
    markers: List[Marker] = []
    if hierarchy is None or len(contours) == 0:
        return markers

    min_area = config['min_marker_area']
    max_area = config['max_marker_area']
    min_dot = config['min_dot_area']
    dot_ratio = config['max_dot_area_ratio']
    epsilon_ratio = config['approx_epsilon_ratio']
    radius = config['dedup_radius']

    links = hierarchy.reshape(-1, 4)
    for idx, contour in enumerate(contours):
        parent_idx = int(links[idx][HIERARCHY_PARENT])
        if parent_idx < 0:
            continue

        parent = contours[parent_idx]
        parent_area = cv2.contourArea(parent)
        if not min_area < parent_area < max_area:
            continue

        dot_area = cv2.contourArea(contour)
        if not min_dot < dot_area < parent_area * dot_ratio:
            continue

        shape = classify_shape(parent, epsilon_ratio)
        if shape == MarkerShape.UNKNOWN:
            continue

        center = bounding_box_center(parent)
        if is_duplicate(center, markers, radius):
            continue

        markers.append(Marker(shape=shape, center=center, area=float(parent_area)))

    logger.debug(f'Accepted {len(markers)} markers from {len(contours)} contours')
    return markers
