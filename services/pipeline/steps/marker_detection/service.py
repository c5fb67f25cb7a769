"""
Frame Analyzer - Orchestrator for the fiducial marker pipeline.

Runs once per camera frame:
1. Grayscale + blur into reusable scratch buffers
2. Inverted adaptive threshold
3. Contour tree extraction
4. Nested-pair filter, shape classification, dedup
5. Corner role assignment and alignment validation
6. Feedback rendering onto a copy of the frame

The analyzer never raises for frame content: bad frames and OpenCV failures
degrade to a "no markers" result so the caller's scanning loop keeps going.
"""

import logging
from typing import Dict, List, Optional

import cv2
import numpy as np

from config.marker_config import get_marker_config, validate_marker_config
from services.utils.debug import DebugContext
from utils.detection_visualization import draw_marker_feedback

from .context import (
    AnalysisBuffers,
    DetectionResult,
    DetectionState,
    Marker,
    STATUS_ADJUST_DISTANCE,
    STATUS_ADJUST_POSITION,
    STATUS_ALIGNED,
    STATUS_PARTIAL,
)
from .contours import binarize, extract_contour_tree, find_marker_candidates, frame_channels, preprocess
from .validation import validate_alignment

logger = logging.getLogger(__name__)

SUPPORTED_CHANNELS = (1, 3, 4)


def describe_frame_problem(frame) -> Optional[str]:
    """
    Check that a frame can go through the pipeline.

    Returns:
        A short description of what is wrong, or None if the frame is usable
    """
    if frame is None:
        return 'no frame'
    if not isinstance(frame, np.ndarray):
        return f'expected numpy array, got {type(frame).__name__}'
    if frame.dtype != np.uint8:
        return f'expected uint8 pixels, got {frame.dtype}'
    if frame.ndim not in (2, 3):
        return f'unexpected frame shape {frame.shape}'
    if frame.shape[0] == 0 or frame.shape[1] == 0:
        return 'empty frame'
    if frame_channels(frame) not in SUPPORTED_CHANNELS:
        return f'unsupported channel count {frame_channels(frame)}'
    return None


class FrameAnalyzer:
    """
    Per-frame fiducial detection and strip alignment check.

    One instance owns its scratch buffers; do not share an instance between
    threads. Use close() (or a with-block) to release the buffers, after which
    analyze() reports the backend as not ready.
    """

    def __init__(self, config: Dict = None):
        """
        Initialize frame analyzer.

        Args:
            config: Overrides for get_marker_config() values

        Raises:
            ValueError: If the merged configuration is invalid
        """
        self.config = {**get_marker_config(), **(config or {})}
        validate_marker_config(self.config)
        self.buffers = AnalysisBuffers()
        self._closed = False
        self.logger = logging.getLogger(__name__)

    @property
    def is_ready(self) -> bool:
        return not self._closed

    def close(self) -> None:
        """Release scratch buffers."""
        self.buffers.release()
        self._closed = True

    def __enter__(self) -> 'FrameAnalyzer':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def analyze(
        self,
        frame: np.ndarray,
        debug: Optional[DebugContext] = None,
        render: bool = True
    ) -> DetectionResult:
        """
        Detect the corner markers in a frame and check strip alignment.

        Args:
            frame: uint8 image, grayscale or 3/4 channel in the configured colour order
            debug: Optional debug context for visual logging
            render: Whether to produce the annotated frame

        Returns:
            DetectionResult; annotated_frame is set when render is True and
            stays valid until the next call
        """
        if not self.is_ready:
            return DetectionResult.not_ready()

        problem = describe_frame_problem(frame)
        if problem:
            self.logger.warning(f'Skipping frame: {problem}')
            return DetectionResult.empty()

        try:
            return self._run_pipeline(frame, debug, render)
        except (cv2.error, ValueError, KeyError) as e:
            self.logger.warning(f'Frame analysis failed: {e}', exc_info=True)
            return DetectionResult.empty()

    def _run_pipeline(
        self,
        frame: np.ndarray,
        debug: Optional[DebugContext],
        render: bool
    ) -> DetectionResult:
        h, w = frame.shape[:2]
        self.buffers.ensure(h, w)

        blurred = preprocess(frame, self.buffers, self.config)
        binary = binarize(blurred, self.buffers, self.config)
        if debug:
            debug.add_step('01_grayscale', 'Grayscale', self.buffers.gray,
                           {'shape': frame.shape}, 'Luminance before blur')
            debug.add_step('02_binary', 'Adaptive Threshold', binary,
                           {'block_size': self.config['threshold_block_size'],
                            'offset': self.config['threshold_offset']},
                           'Inverted adaptive threshold (markers are foreground)')

        contours, hierarchy = extract_contour_tree(binary)
        markers = find_marker_candidates(contours, hierarchy, self.config)
        result = self._evaluate(markers)

        if render:
            result.annotated_frame = self._render(frame, result)

        if debug:
            debug.add_step('03_markers', 'Detected Markers',
                           result.annotated_frame if result.annotated_frame is not None else frame,
                           {'contours': len(contours), **result.to_dict()},
                           result.status_message)

        return result

    def _evaluate(self, markers: List[Marker]) -> DetectionResult:
        """Turn accepted markers into a verdict and status message."""
        check = validate_alignment(markers, self.config)
        if check is None:
            if not markers:
                return DetectionResult.empty()
            return DetectionResult(
                markers=markers,
                is_aligned=False,
                status_message=STATUS_PARTIAL.format(count=len(markers)),
                state=DetectionState.PARTIAL_MARKERS
            )

        if not check.checks_passed['shape_pattern']:
            status = STATUS_ADJUST_POSITION
        elif not check.is_aligned:
            status = STATUS_ADJUST_DISTANCE
        else:
            status = STATUS_ALIGNED

        return DetectionResult(
            markers=markers,
            is_aligned=check.is_aligned,
            status_message=status,
            state=DetectionState.ALIGNED if check.is_aligned else DetectionState.MISALIGNED,
            corners=check.corners,
            aspect_ratio=check.aspect_ratio
        )

    def _render(self, frame: np.ndarray, result: DetectionResult) -> Optional[np.ndarray]:
        """Copy the frame into the annotation buffer and draw feedback on it."""
        try:
            if frame_channels(frame) == 1:
                h, w = frame.shape[:2]
                canvas = self.buffers.ensure_annotated((h, w, 3))
                cv2.cvtColor(frame.reshape(h, w), cv2.COLOR_GRAY2BGR, dst=canvas)
                color_order = 'bgr'
            else:
                canvas = self.buffers.ensure_annotated(frame.shape)
                np.copyto(canvas, frame)
                color_order = self.config['color_order']

            return draw_marker_feedback(canvas, result.markers, result.is_aligned,
                                        result.corners, color_order)
        except cv2.error as e:
            self.logger.warning(f'Feedback rendering failed: {e}')
            return None
