"""
Pipeline services for test strip scanning.

Main orchestrator: FrameAnalyzer
"""

from services.pipeline.steps.marker_detection import FrameAnalyzer

__all__ = ['FrameAnalyzer']
