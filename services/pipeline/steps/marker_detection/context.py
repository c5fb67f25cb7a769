"""
Detection Context - Data types shared by the marker detection pipeline.

Holds the marker, corner and result types produced for each frame, plus the
scratch buffers a FrameAnalyzer reuses between calls.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from services.interfaces import CornersDict, DetectionResultDict, MarkerDict, PointDict


STATUS_NOT_READY = 'Vision backend not ready'
STATUS_SEARCHING = 'Align the test strip inside the frame'
STATUS_PARTIAL = 'Recognized {count}/4 markers'
STATUS_ADJUST_POSITION = 'Adjust position'
STATUS_ADJUST_DISTANCE = 'Adjust distance/angle'
STATUS_ALIGNED = 'Aligned! Hold steady'

REQUIRED_MARKERS = 4


class MarkerShape(str, Enum):
    """Outline shape of a fiducial marker."""
    CIRCLE = 'CIRCLE'
    SQUARE = 'SQUARE'
    UNKNOWN = 'UNKNOWN'


class DetectionState(str, Enum):
    """Where a single analysis call ended up."""
    NOT_READY = 'not_ready'
    NO_MARKERS = 'no_markers'
    PARTIAL_MARKERS = 'partial_markers'
    MISALIGNED = 'misaligned'
    ALIGNED = 'aligned'


@dataclass(frozen=True)
class Point:
    """Pixel coordinates in the frame."""
    x: float
    y: float

    def distance_to(self, other: 'Point') -> float:
        return float(np.hypot(self.x - other.x, self.y - other.y))

    def to_dict(self) -> PointDict:
        return {'x': self.x, 'y': self.y}


@dataclass(frozen=True)
class Marker:
    """A detected fiducial: outline shape with a dot nested inside."""
    shape: MarkerShape
    center: Point
    area: float
    confidence: float = 1.0

    def to_dict(self) -> MarkerDict:
        return {
            'shape': self.shape.value,
            'center': self.center.to_dict(),
            'area': self.area,
            'confidence': self.confidence
        }


@dataclass(frozen=True)
class CornerRoles:
    """The four markers assigned to strip corners."""
    top_left: Marker
    top_right: Marker
    bottom_left: Marker
    bottom_right: Marker

    def as_polygon(self) -> List[Tuple[float, float]]:
        """Corner centers in drawing order TL -> TR -> BR -> BL."""
        return [
            (m.center.x, m.center.y)
            for m in (self.top_left, self.top_right, self.bottom_right, self.bottom_left)
        ]

    def to_dict(self) -> CornersDict:
        return {
            'top_left': self.top_left.to_dict(),
            'top_right': self.top_right.to_dict(),
            'bottom_left': self.bottom_left.to_dict(),
            'bottom_right': self.bottom_right.to_dict()
        }


@dataclass
class AlignmentCheck:
    """Result from validating the corner quad."""
    is_aligned: bool
    corners: CornerRoles
    reason: str = ''
    aspect_ratio: Optional[float] = None
    checks_passed: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'is_aligned': self.is_aligned,
            'reason': self.reason,
            'aspect_ratio': self.aspect_ratio,
            'checks_passed': self.checks_passed
        }


@dataclass
class DetectionResult:
    """
    Per-frame output of FrameAnalyzer.

    ``annotated_frame`` is a view of the analyzer's scratch buffer and is only
    valid until the next call; it takes no part in equality.
    """
    markers: List[Marker]
    is_aligned: bool
    status_message: str
    state: DetectionState
    corners: Optional[CornerRoles] = None
    aspect_ratio: Optional[float] = None
    annotated_frame: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    @classmethod
    def not_ready(cls) -> 'DetectionResult':
        return cls(markers=[], is_aligned=False, status_message=STATUS_NOT_READY,
                   state=DetectionState.NOT_READY)

    @classmethod
    def empty(cls) -> 'DetectionResult':
        return cls(markers=[], is_aligned=False, status_message=STATUS_SEARCHING,
                   state=DetectionState.NO_MARKERS)

    def count_shape(self, shape: MarkerShape) -> int:
        return sum(1 for m in self.markers if m.shape == shape)

    def to_dict(self) -> DetectionResultDict:
        return {
            'markers': [m.to_dict() for m in self.markers],
            'is_aligned': self.is_aligned,
            'status_message': self.status_message,
            'state': self.state.value,
            'marker_counts': {
                'circle': self.count_shape(MarkerShape.CIRCLE),
                'square': self.count_shape(MarkerShape.SQUARE)
            },
            'corners': self.corners.to_dict() if self.corners else None,
            'aspect_ratio': self.aspect_ratio
        }


class AnalysisBuffers:
    """
    Scratch images reused across analyze() calls.

    Arrays are reallocated only when the frame geometry changes, so a steady
    camera feed runs without per-frame allocation for the intermediates.
    """

    def __init__(self):
        self.gray: Optional[np.ndarray] = None
        self.blurred: Optional[np.ndarray] = None
        self.binary: Optional[np.ndarray] = None
        self.annotated: Optional[np.ndarray] = None
        self.allocations = 0

    def ensure(self, height: int, width: int) -> None:
        """Make sure the single-channel buffers match (height, width)."""
        if self.gray is not None and self.gray.shape == (height, width):
            return
        self.gray = np.empty((height, width), dtype=np.uint8)
        self.blurred = np.empty((height, width), dtype=np.uint8)
        self.binary = np.empty((height, width), dtype=np.uint8)
        self.allocations += 1

    def ensure_annotated(self, shape: Tuple[int, ...]) -> np.ndarray:
        """Return the annotation buffer, reallocated if shape differs."""
        if self.annotated is None or self.annotated.shape != shape:
            self.annotated = np.empty(shape, dtype=np.uint8)
        return self.annotated

    def release(self) -> None:
        self.gray = None
        self.blurred = None
        self.binary = None
        self.annotated = None
