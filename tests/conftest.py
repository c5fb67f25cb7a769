"""
Shared fixtures: synthetic frames with printed fiducial markers.
"""

import cv2
import numpy as np
import pytest

from services.pipeline.steps.marker_detection import FrameAnalyzer

FRAME_WIDTH = 500
FRAME_HEIGHT = 600

# Strip corners for a frame the analyzer should accept (aspect 400 / 200 = 2.0)
ALIGNED_LAYOUT = [
    ('circle', (150, 100)),
    ('square', (350, 100)),
    ('square', (150, 500)),
    ('circle', (350, 500)),
]


def draw_fiducial(image, shape, center, size=80, thickness=4, dot_radius=6, with_dot=True):
    """Draw a dark outline (circle or square) with an optional solid dot inside."""
    cx, cy = center
    half = size // 2
    if shape == 'square':
        cv2.rectangle(image, (cx - half, cy - half), (cx + half, cy + half), 0, thickness)
    else:
        cv2.circle(image, (cx, cy), half, 0, thickness)
    if with_dot:
        cv2.circle(image, (cx, cy), dot_radius, 0, -1)
    return image


def render_frame(layout, width=FRAME_WIDTH, height=FRAME_HEIGHT, channels=3, color_order='bgr'):
    """
    Render fiducials on a white page.

    Args:
        layout: List of (shape, (x, y)) or (shape, (x, y), with_dot)
        channels: 1, 3 or 4
        color_order: 'bgr' or 'rgb' for the colour conversions
    """
    gray = np.full((height, width), 255, dtype=np.uint8)
    for entry in layout:
        shape, center = entry[0], entry[1]
        with_dot = entry[2] if len(entry) > 2 else True
        draw_fiducial(gray, shape, center, with_dot=with_dot)

    if channels == 1:
        return gray
    if channels == 3:
        return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR if color_order == 'bgr' else cv2.COLOR_GRAY2RGB)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGRA if color_order == 'bgr' else cv2.COLOR_GRAY2RGBA)


@pytest.fixture
def make_frame():
    """Factory for synthetic frames, see render_frame."""
    return render_frame


@pytest.fixture
def aligned_frame():
    return render_frame(ALIGNED_LAYOUT)


@pytest.fixture
def analyzer():
    frame_analyzer = FrameAnalyzer(config={'color_order': 'bgr'})
    yield frame_analyzer
    frame_analyzer.close()


@pytest.fixture
def aligned_layout():
    return list(ALIGNED_LAYOUT)
