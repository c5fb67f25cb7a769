"""
Marker Detection Package - Per-frame fiducial detection and alignment check.

This package provides the marker detection pipeline:
- service.py: Main orchestrator (FrameAnalyzer)
- context.py: Data types (Marker, DetectionResult) and scratch buffers
- contours.py: Threshold, contour tree and nested-pair candidate steps
- validation.py: Corner assignment and alignment validation

Usage:
    from services.pipeline.steps.marker_detection import FrameAnalyzer

    analyzer = FrameAnalyzer()
    result = analyzer.analyze(frame)
"""

from .service import FrameAnalyzer
from .context import (
    AlignmentCheck,
    CornerRoles,
    DetectionResult,
    DetectionState,
    Marker,
    MarkerShape,
    Point,
)
from .validation import validate_alignment, assign_corner_roles

__all__ = [
    'FrameAnalyzer',
    'AlignmentCheck',
    'CornerRoles',
    'DetectionResult',
    'DetectionState',
    'Marker',
    'MarkerShape',
    'Point',
    'validate_alignment',
    'assign_corner_roles'
]
