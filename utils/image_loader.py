"""
Image loading utilities for the StripScan CV Service.
Supports decoding uploaded frames, base64 payloads, local paths and URLs.
"""

import base64
import binascii
import cv2
import numpy as np
import requests
import logging
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def load_image(image_path: str, timeout: int = 30) -> np.ndarray:
    """
    Load image from local path or URL.

    Args:
        image_path: Path to image (local file path or HTTP/HTTPS URL)
        timeout: Request timeout in seconds for URL downloads

    Returns:
        OpenCV image array in BGR format (numpy.ndarray)

    Raises:
        ValueError: If image path is invalid or image cannot be loaded
    """
    if not image_path:
        raise ValueError('image_path cannot be empty')

    parsed = urlparse(image_path)
    is_url = parsed.scheme in ('http', 'https')

    if is_url:
        logger.info(f'Loading image from URL: {image_path}')
        try:
            response = requests.get(image_path, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f'Failed to download image from URL: {e}')
            raise ValueError(f'Failed to load image from URL: {str(e)}')
        image = decode_image_bytes(response.content)
    else:
        logger.info(f'Loading image from local path: {image_path}')
        image = cv2.imread(image_path, cv2.IMREAD_COLOR)
        if image is None:
            raise ValueError(f'Failed to decode image: {image_path}')

    height, width = image.shape[:2]
    logger.debug(f'Successfully loaded image: {width}x{height} pixels')
    return image


def decode_image_bytes(data: bytes, keep_alpha: bool = False) -> np.ndarray:
    """
    Decode encoded image bytes (PNG, JPEG, ...).

    Args:
        data: Encoded image file contents
        keep_alpha: Keep a 4th channel if the image has one (BGRA)

    Returns:
        OpenCV image array in BGR (or BGRA) format

    Raises:
        ValueError: If the bytes are empty or cannot be decoded
    """
    if not data:
        raise ValueError('Image data is empty')

    flags = cv2.IMREAD_UNCHANGED if keep_alpha else cv2.IMREAD_COLOR
    image = cv2.imdecode(np.frombuffer(data, np.uint8), flags)
    if image is None or image.size == 0:
        raise ValueError('Failed to decode image data')

    # IMREAD_UNCHANGED can return 16-bit images; the pipeline works on 8-bit
    if image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image, alpha=255.0 / np.iinfo(image.dtype).max)
    return image


def decode_base64_image(payload: str, keep_alpha: bool = False) -> np.ndarray:
    """
    Decode a base64 image, optionally given as a data URL.

    Args:
        payload: Base64 string, e.g. "iVBOR..." or "data:image/png;base64,iVBOR..."
        keep_alpha: Keep a 4th channel if the image has one

    Returns:
        OpenCV image array

    Raises:
        ValueError: If the payload is not valid base64 or not an image
    """
    if not isinstance(payload, str) or not payload.strip():
        raise ValueError('image_base64 must be a non-empty string')

    if payload.startswith('data:'):
        _, _, payload = payload.partition(',')

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f'Invalid base64 image data: {e}')
    return decode_image_bytes(data, keep_alpha=keep_alpha)


def encode_image_base64(image: np.ndarray, ext: str = '.png') -> str:
    """
    Encode an image as a base64 string.

    Args:
        image: OpenCV image array
        ext: Encoding format extension ('.png' or '.jpg')

    Returns:
        ASCII base64 string of the encoded file

    Raises:
        ValueError: If OpenCV cannot encode the image
    """
    ok, buffer = cv2.imencode(ext, image)
    if not ok:
        raise ValueError(f'Failed to encode image as {ext}')
    return base64.b64encode(buffer.tobytes()).decode('ascii')


def get_image_info(image: np.ndarray) -> dict:
    """
    Get basic information about an image.

    Args:
        image: OpenCV image array

    Returns:
        Dictionary with image information (width, height, channels, dtype)
    """
    height, width = image.shape[:2]
    channels = image.shape[2] if len(image.shape) == 3 else 1

    return {
        'width': width,
        'height': height,
        'channels': channels,
        'dtype': str(image.dtype),
        'size_bytes': image.nbytes
    }
