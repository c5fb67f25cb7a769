"""
Unit tests for image loading and encoding helpers.
"""

import base64

import cv2
import numpy as np
import pytest

from utils.image_loader import (
    decode_base64_image,
    decode_image_bytes,
    encode_image_base64,
    get_image_info,
    load_image,
)


def png_bytes(image):
    ok, buffer = cv2.imencode('.png', image)
    assert ok
    return buffer.tobytes()


class TestImageLoader:
    """Test cases for image loader utilities."""

    def setup_method(self):
        """Set up test fixtures."""
        self.image = np.zeros((40, 60, 3), dtype=np.uint8)
        self.image[10:20, 10:30] = (255, 0, 0)

    def test_decode_image_bytes(self):
        decoded = decode_image_bytes(png_bytes(self.image))
        np.testing.assert_array_equal(decoded, self.image)

    def test_decode_keeps_alpha_when_asked(self):
        bgra = cv2.cvtColor(self.image, cv2.COLOR_BGR2BGRA)
        assert decode_image_bytes(png_bytes(bgra), keep_alpha=True).shape == (40, 60, 4)
        assert decode_image_bytes(png_bytes(bgra)).shape == (40, 60, 3)

    def test_decode_empty_bytes(self):
        with pytest.raises(ValueError):
            decode_image_bytes(b'')

    def test_decode_garbage_bytes(self):
        with pytest.raises(ValueError):
            decode_image_bytes(b'not an image at all')

    def test_decode_base64_data_url(self):
        payload = 'data:image/png;base64,' + base64.b64encode(png_bytes(self.image)).decode('ascii')
        assert decode_base64_image(payload).shape == (40, 60, 3)

    def test_decode_invalid_base64(self):
        with pytest.raises(ValueError):
            decode_base64_image('***')
        with pytest.raises(ValueError):
            decode_base64_image('')

    def test_encode_image_base64(self):
        encoded = encode_image_base64(self.image)
        decoded = decode_base64_image(encoded)
        np.testing.assert_array_equal(decoded, self.image)

    def test_load_image_local_path(self, tmp_path):
        path = tmp_path / 'frame.png'
        cv2.imwrite(str(path), self.image)
        assert load_image(str(path)).shape == (40, 60, 3)

    def test_load_image_missing_path(self, tmp_path):
        with pytest.raises(ValueError):
            load_image(str(tmp_path / 'missing.png'))
        with pytest.raises(ValueError):
            load_image('')

    def test_get_image_info(self):
        info = get_image_info(self.image)
        assert info == {'width': 60, 'height': 40, 'channels': 3, 'dtype': 'uint8', 'size_bytes': 7200}
