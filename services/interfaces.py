"""
Service interfaces and type definitions for the StripScan CV Service.

This module defines the JSON structures returned by the HTTP layer,
ensuring clear contracts with the scanner front end.
"""

from typing import TypedDict, List, Optional, Literal


class PointDict(TypedDict):
    """Pixel coordinates in the analyzed frame."""
    x: float
    y: float


class MarkerDict(TypedDict):
    """
    A detected fiducial marker.

    Center is the bounding-box center of the marker outline.
    """
    shape: Literal["CIRCLE", "SQUARE"]
    center: PointDict
    area: float  # Outline contour area in px^2
    confidence: float  # Fixed 1.0


class MarkerCounts(TypedDict):
    """Markers found per shape (two of each are expected)."""
    circle: int
    square: int


class CornersDict(TypedDict):
    """Markers assigned to the strip corners."""
    top_left: MarkerDict
    top_right: MarkerDict
    bottom_left: MarkerDict
    bottom_right: MarkerDict


class DetectionResultDict(TypedDict):
    """
    Per-frame detection result.

    Markers are listed in contour traversal order, not spatial order.
    """
    markers: List[MarkerDict]
    is_aligned: bool
    status_message: str
    state: Literal["not_ready", "no_markers", "partial_markers", "misaligned", "aligned"]
    marker_counts: MarkerCounts
    corners: Optional[CornersDict]  # Set once four markers were found
    aspect_ratio: Optional[float]  # Strip height / width when the shape pattern matched


class AnalyzeFrameResponse(TypedDict, total=False):
    """Response body of POST /analyze-frame."""
    success: bool
    data: DetectionResultDict
    processing_time_ms: int
    annotated_frame: str  # Base64 PNG, only when include_annotated was requested


class ErrorResponse(TypedDict):
    """Error body returned with 4xx/5xx responses."""
    success: bool
    error: str
    error_code: Literal["MISSING_PARAMETER", "INVALID_PARAMETER", "IMAGE_LOAD_ERROR", "INTERNAL_ERROR"]
