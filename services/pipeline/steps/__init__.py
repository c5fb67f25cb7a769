"""
Pipeline step services.

Steps:
- FrameAnalyzer: Detects corner markers and checks strip alignment per frame
"""

from services.pipeline.steps.marker_detection import FrameAnalyzer

__all__ = [
    'FrameAnalyzer'
]
