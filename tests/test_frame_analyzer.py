"""
End-to-end tests for FrameAnalyzer on synthetic frames.
"""

import numpy as np
import pytest

from services.pipeline.steps.marker_detection import DetectionState, FrameAnalyzer, MarkerShape
from services.pipeline.steps.marker_detection.context import (
    STATUS_ADJUST_DISTANCE,
    STATUS_ADJUST_POSITION,
    STATUS_ALIGNED,
    STATUS_NOT_READY,
    STATUS_SEARCHING,
)

GREEN_BGR = (94, 197, 34)
BLUE_BGR = (246, 130, 59)


class TestFrameAnalyzer:
    """Test cases for the full detection pipeline."""

    def test_aligned_strip(self, analyzer, aligned_frame):
        result = analyzer.analyze(aligned_frame)

        assert result.state == DetectionState.ALIGNED
        assert result.is_aligned is True
        assert result.status_message == STATUS_ALIGNED
        assert len(result.markers) == 4
        assert result.aspect_ratio == pytest.approx(2.0, abs=0.05)

        corners = result.corners
        assert corners.top_left.shape == MarkerShape.CIRCLE
        assert corners.top_right.shape == MarkerShape.SQUARE
        assert corners.bottom_left.shape == MarkerShape.SQUARE
        assert corners.bottom_right.shape == MarkerShape.CIRCLE
        assert corners.top_left.center.x == pytest.approx(150, abs=3)
        assert corners.top_left.center.y == pytest.approx(100, abs=3)
        assert corners.bottom_right.center.x == pytest.approx(350, abs=3)
        assert corners.bottom_right.center.y == pytest.approx(500, abs=3)

    def test_marker_area_and_confidence(self, analyzer, aligned_frame):
        result = analyzer.analyze(aligned_frame)
        for marker in result.markers:
            assert 400 < marker.area < 20000
            assert marker.confidence == 1.0

    def test_blank_frame(self, analyzer, make_frame):
        result = analyzer.analyze(make_frame([]))

        assert result.markers == []
        assert result.is_aligned is False
        assert result.state == DetectionState.NO_MARKERS
        assert result.status_message == STATUS_SEARCHING

    def test_black_frame(self, analyzer):
        result = analyzer.analyze(np.zeros((240, 320, 3), dtype=np.uint8))
        assert result.markers == []
        assert result.is_aligned is False

    def test_outlines_without_dots(self, analyzer, make_frame):
        frame = make_frame([('square', (150, 150), False), ('circle', (350, 150), False)])
        assert analyzer.analyze(frame).markers == []

    def test_partial_markers(self, analyzer, make_frame, aligned_layout):
        result = analyzer.analyze(make_frame(aligned_layout[:2]))

        assert result.state == DetectionState.PARTIAL_MARKERS
        assert result.status_message == 'Recognized 2/4 markers'
        assert result.is_aligned is False

    def test_wrong_corner_pattern(self, analyzer, make_frame):
        layout = [
            ('square', (150, 100)),
            ('square', (350, 100)),
            ('square', (150, 500)),
            ('circle', (350, 500)),
        ]
        result = analyzer.analyze(make_frame(layout))

        assert result.state == DetectionState.MISALIGNED
        assert result.status_message == STATUS_ADJUST_POSITION

    def test_strip_too_short(self, analyzer, make_frame):
        layout = [
            ('circle', (150, 100)),
            ('square', (350, 100)),
            ('square', (150, 250)),
            ('circle', (350, 250)),
        ]
        result = analyzer.analyze(make_frame(layout))

        assert result.state == DetectionState.MISALIGNED
        assert result.status_message == STATUS_ADJUST_DISTANCE
        assert result.aspect_ratio == pytest.approx(0.75, abs=0.05)

    def test_deterministic(self, analyzer, aligned_frame):
        first = analyzer.analyze(aligned_frame)
        second = analyzer.analyze(aligned_frame)
        assert first == second

    @pytest.mark.parametrize('channels,color_order', [(1, 'bgr'), (3, 'rgb'), (4, 'bgr'), (4, 'rgb')])
    def test_frame_layouts(self, make_frame, aligned_layout, channels, color_order):
        frame = make_frame(aligned_layout, channels=channels, color_order=color_order)
        with FrameAnalyzer(config={'color_order': color_order}) as frame_analyzer:
            result = frame_analyzer.analyze(frame)

        assert result.is_aligned is True
        assert result.annotated_frame.shape[:2] == frame.shape[:2]

    def test_input_frame_is_not_modified(self, analyzer, aligned_frame):
        original = aligned_frame.copy()
        analyzer.analyze(aligned_frame)
        np.testing.assert_array_equal(aligned_frame, original)


class TestDegradedInput:
    """Test cases for frames the analyzer cannot process."""

    @pytest.mark.parametrize('frame', [
        None,
        [[0, 0], [0, 0]],
        np.zeros((0, 0, 3), dtype=np.uint8),
        np.zeros((50, 50, 3), dtype=np.float32),
        np.zeros((50, 50, 5), dtype=np.uint8),
        np.zeros((5, 5, 5, 3), dtype=np.uint8),
    ])
    def test_malformed_frame_degrades(self, analyzer, frame):
        result = analyzer.analyze(frame)

        assert result.markers == []
        assert result.is_aligned is False
        assert result.state == DetectionState.NO_MARKERS
        assert result.status_message == STATUS_SEARCHING

    def test_closed_analyzer_is_not_ready(self, aligned_frame):
        frame_analyzer = FrameAnalyzer()
        frame_analyzer.close()

        result = frame_analyzer.analyze(aligned_frame)

        assert frame_analyzer.is_ready is False
        assert result.state == DetectionState.NOT_READY
        assert result.status_message == STATUS_NOT_READY
        assert result.markers == []

    def test_invalid_config_raises(self):
        with pytest.raises(ValueError):
            FrameAnalyzer(config={'threshold_block_size': 10})


class TestScratchBuffers:
    """Test cases for buffer reuse across calls."""

    def test_buffers_reused_for_same_size(self, analyzer, aligned_frame):
        analyzer.analyze(aligned_frame)
        gray, binary, annotated = analyzer.buffers.gray, analyzer.buffers.binary, analyzer.buffers.annotated

        analyzer.analyze(aligned_frame)

        assert analyzer.buffers.gray is gray
        assert analyzer.buffers.binary is binary
        assert analyzer.buffers.annotated is annotated
        assert analyzer.buffers.allocations == 1

    def test_buffers_reallocated_on_resize(self, analyzer, make_frame):
        analyzer.analyze(make_frame([], width=320, height=240))
        analyzer.analyze(make_frame([], width=640, height=480))

        assert analyzer.buffers.gray.shape == (480, 640)
        assert analyzer.buffers.allocations == 2

    def test_close_releases_buffers(self, aligned_frame):
        frame_analyzer = FrameAnalyzer()
        frame_analyzer.analyze(aligned_frame)
        frame_analyzer.close()
        assert frame_analyzer.buffers.gray is None
        assert frame_analyzer.buffers.annotated is None


class TestFeedbackRendering:
    """Test cases for the annotated frame."""

    def test_aligned_markers_drawn_green(self, analyzer, aligned_frame):
        result = analyzer.analyze(aligned_frame)

        annotated = result.annotated_frame
        assert annotated.shape == aligned_frame.shape
        assert tuple(annotated[100, 150]) == GREEN_BGR
        assert tuple(annotated[500, 350]) == GREEN_BGR
        # Quad edge between top corners
        assert tuple(annotated[100, 250]) == GREEN_BGR

    def test_misaligned_markers_drawn_blue(self, analyzer, make_frame, aligned_layout):
        result = analyzer.analyze(make_frame(aligned_layout[:3]))

        annotated = result.annotated_frame
        assert tuple(annotated[100, 150]) == BLUE_BGR
        # No quad outline without alignment
        assert tuple(annotated[100, 250]) == (255, 255, 255)

    def test_rgba_colors_follow_channel_order(self, make_frame, aligned_layout):
        frame = make_frame(aligned_layout, channels=4, color_order='rgb')
        with FrameAnalyzer(config={'color_order': 'rgb'}) as frame_analyzer:
            result = frame_analyzer.analyze(frame)
            pixel = tuple(result.annotated_frame[100, 150])

        assert pixel == (34, 197, 94, 255)

    def test_render_disabled(self, analyzer, aligned_frame):
        result = analyzer.analyze(aligned_frame, render=False)
        assert result.annotated_frame is None
        assert result.is_aligned is True
