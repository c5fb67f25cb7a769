"""
Fiducial marker detection configuration.
"""

import os
from typing import Dict

# Gaussian blur kernel applied before thresholding (odd, pixels)
MARKER_BLUR_KERNEL_SIZE: int = int(os.getenv('MARKER_BLUR_KERNEL_SIZE', '5'))

# Adaptive threshold neighbourhood (odd, pixels) and constant offset
MARKER_THRESHOLD_BLOCK_SIZE: int = int(os.getenv('MARKER_THRESHOLD_BLOCK_SIZE', '11'))
MARKER_THRESHOLD_OFFSET: float = float(os.getenv('MARKER_THRESHOLD_OFFSET', '2'))

# Outer contour (marker outline) area bounds in px^2, exclusive
MARKER_MIN_AREA: float = float(os.getenv('MARKER_MIN_AREA', '400'))
MARKER_MAX_AREA: float = float(os.getenv('MARKER_MAX_AREA', '20000'))

# Inner dot area bounds: above MIN_DOT_AREA and below outline area * ratio
MARKER_MIN_DOT_AREA: float = float(os.getenv('MARKER_MIN_DOT_AREA', '50'))
MARKER_MAX_DOT_AREA_RATIO: float = float(os.getenv('MARKER_MAX_DOT_AREA_RATIO', '0.4'))

# Polygon approximation tolerance as a fraction of the contour perimeter
MARKER_APPROX_EPSILON_RATIO: float = float(os.getenv('MARKER_APPROX_EPSILON_RATIO', '0.04'))

# Candidates closer than this (pixels) to an accepted marker are duplicates
MARKER_DEDUP_RADIUS: float = float(os.getenv('MARKER_DEDUP_RADIUS', '30'))

# Strip height/width band, exclusive. Target strip is 7x15cm (~2.14)
STRIP_MIN_ASPECT_RATIO: float = float(os.getenv('STRIP_MIN_ASPECT_RATIO', '1.5'))
STRIP_MAX_ASPECT_RATIO: float = float(os.getenv('STRIP_MAX_ASPECT_RATIO', '3.0'))

# Channel order of 3/4 channel frames: 'bgr' (OpenCV capture) or 'rgb' (RGBA camera buffers)
FRAME_COLOR_ORDER: str = os.getenv('FRAME_COLOR_ORDER', 'bgr').lower()

COLOR_ORDERS = ('bgr', 'rgb')


def get_marker_config() -> Dict:
    """
    Get marker detection configuration dictionary.
    
    Returns:
        Dictionary with marker detection parameters
    """
    return {
        'blur_kernel_size': MARKER_BLUR_KERNEL_SIZE,
        'threshold_block_size': MARKER_THRESHOLD_BLOCK_SIZE,
        'threshold_offset': MARKER_THRESHOLD_OFFSET,
        'min_marker_area': MARKER_MIN_AREA,
        'max_marker_area': MARKER_MAX_AREA,
        'min_dot_area': MARKER_MIN_DOT_AREA,
        'max_dot_area_ratio': MARKER_MAX_DOT_AREA_RATIO,
        'approx_epsilon_ratio': MARKER_APPROX_EPSILON_RATIO,
        'dedup_radius': MARKER_DEDUP_RADIUS,
        'min_aspect_ratio': STRIP_MIN_ASPECT_RATIO,
        'max_aspect_ratio': STRIP_MAX_ASPECT_RATIO,
        'color_order': FRAME_COLOR_ORDER
    }


def validate_marker_config(config: Dict) -> None:
    """
    Validate a marker detection configuration.
    
    Args:
        config: Configuration dictionary (as returned by get_marker_config)
    
    Raises:
        ValueError: If any parameter is out of range
    """
    for key in ('blur_kernel_size', 'threshold_block_size'):
        value = config[key]
        if not isinstance(value, int) or value < 1 or value % 2 == 0:
            raise ValueError(f'{key} must be a positive odd integer, got {value!r}')
    if config['threshold_block_size'] < 3:
        raise ValueError('threshold_block_size must be at least 3')

    if not 0 <= config['min_marker_area'] < config['max_marker_area']:
        raise ValueError(
            f"marker area bounds invalid: {config['min_marker_area']} .. {config['max_marker_area']}"
        )
    if config['min_dot_area'] < 0:
        raise ValueError('min_dot_area must be non-negative')
    if not 0 < config['max_dot_area_ratio'] <= 1:
        raise ValueError('max_dot_area_ratio must be in (0, 1]')
    if config['approx_epsilon_ratio'] <= 0:
        raise ValueError('approx_epsilon_ratio must be positive')
    if config['dedup_radius'] < 0:
        raise ValueError('dedup_radius must be non-negative')
    if not 0 < config['min_aspect_ratio'] < config['max_aspect_ratio']:
        raise ValueError(
            f"aspect ratio band invalid: {config['min_aspect_ratio']} .. {config['max_aspect_ratio']}"
        )
    if config['color_order'] not in COLOR_ORDERS:
        raise ValueError(f"color_order must be one of {COLOR_ORDERS}, got {config['color_order']!r}")
