"""
StripScan CV Service - Flask Application
Computer Vision service for locating test strips by their corner markers
"""

from flask import Flask, request, jsonify, g
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import cv2
import numpy as np
import logging
import threading
import time
import uuid
from dotenv import load_dotenv
import os
from typing import Dict, Optional, Tuple

from services.interfaces import AnalyzeFrameResponse
from services.pipeline import FrameAnalyzer
from utils.image_loader import decode_base64_image, decode_image_bytes, encode_image_base64, get_image_info, load_image

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)
CORS(app)  # Scanner front end is served from another origin

# Determine if we're in production mode
is_production = os.getenv('FLASK_DEBUG', 'False').lower() != 'true'

# Request ID middleware for tracing
@app.before_request
def generate_request_id():
    """Generate or use existing request ID for tracing."""
    g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
    logger.debug(f'[Request {g.request_id}] {request.method} {request.path}')

@app.after_request
def add_request_id_header(response):
    """Add request ID to response headers."""
    if hasattr(g, 'request_id'):
        response.headers['X-Request-ID'] = g.request_id
    return response


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize error messages for production.

    In production, returns generic messages to prevent information disclosure.
    In development, returns full error details for debugging.

    Args:
        error: Exception object

    Returns:
        Sanitized error message string
    """
    if is_production:
        return "An internal error occurred. Please try again later."
    else:
        return str(error)

# Rate limiting configuration. Frames arrive continuously while scanning,
# so the analyze limit is sized for a live preview loop.
limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=[os.getenv('DEFAULT_RATE_LIMIT', '600 per minute')],
    storage_uri="memory://",  # In-memory storage (use Redis in production for multi-instance)
    headers_enabled=True
)
ANALYZE_RATE_LIMIT = os.getenv('ANALYZE_RATE_LIMIT', '1800 per minute')

# Configuration
app.config['MAX_CONTENT_LENGTH'] = 10 * 1024 * 1024  # 10MB max file size

# One analyzer per worker thread: scratch buffers must never be shared
_analyzers = threading.local()


def get_frame_analyzer() -> FrameAnalyzer:
    """Get or create this thread's frame analyzer."""
    analyzer = getattr(_analyzers, 'analyzer', None)
    if analyzer is None:
        # Uploaded images are decoded by OpenCV, so they are always BGR(A)
        analyzer = FrameAnalyzer(config={'color_order': 'bgr'})
        _analyzers.analyzer = analyzer
    return analyzer


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': 'stripscan-cv-service',
        'opencv_version': cv2.__version__,
        'numpy_version': np.__version__
    })


def parse_bool(value) -> bool:
    """Interpret a JSON or form value as a boolean flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def read_frame_from_request() -> Tuple[Optional[np.ndarray], Dict, Optional[Tuple[str, str]]]:
    """
    Pull the frame out of the current request.

    Accepts a multipart file field 'frame', or JSON with 'image_base64'
    or 'image_path'.

    Returns:
        Tuple of (image, options, error) where error is (message, error_code)
    """
    upload = request.files.get('frame')
    if upload is not None:
        options = request.form.to_dict()
        try:
            return decode_image_bytes(upload.read()), options, None
        except ValueError as e:
            return None, options, (f'Failed to load image: {str(e)}', 'IMAGE_LOAD_ERROR')

    data = request.get_json(silent=True)
    if not data:
        return None, {}, ('Provide a frame file upload or a JSON body', 'MISSING_PARAMETER')
    if not isinstance(data, dict):
        return None, {}, ('Request must be JSON object', 'INVALID_PARAMETER')

    if 'image_base64' in data:
        loader, source = decode_base64_image, data['image_base64']
    elif 'image_path' in data:
        if not isinstance(data['image_path'], str) or not data['image_path'].strip():
            return None, data, ('image_path must be a non-empty string', 'INVALID_PARAMETER')
        loader, source = load_image, data['image_path']
    else:
        return None, data, ('image_base64 or image_path is required', 'MISSING_PARAMETER')

    try:
        return loader(source), data, None
    except ValueError as e:
        logger.warning(f'Failed to load image: {e}')
        return None, data, (f'Failed to load image: {str(e)}', 'IMAGE_LOAD_ERROR')


@app.route('/analyze-frame', methods=['POST'])
@limiter.limit(ANALYZE_RATE_LIMIT)
def analyze_frame():
    """
    Detect the four corner markers in one camera frame.

    Request (multipart or JSON):
    - frame: Image file upload (multipart), or
    - image_base64: Base64 image, optionally as a data URL (JSON), or
    - image_path: Local path or HTTP/HTTPS URL (JSON)
    - include_annotated: Return the annotated frame as base64 PNG (default: false)

    Returns:
    - Detected markers with shape, center and area
    - Alignment verdict, state and status message
    - Processing time
    """
    start_time = time.time()
    request_id = getattr(g, 'request_id', 'unknown')

    try:
        image, options, error = read_frame_from_request()
        if error:
            error_msg, error_code = error
            return jsonify({
                'success': False,
                'error': error_msg,
                'error_code': error_code
            }), 400

        include_annotated = parse_bool(options.get('include_annotated', False))
        info = get_image_info(image)
        logger.debug(f"[Request {request_id}] Analyzing {info['width']}x{info['height']} frame")

        result = get_frame_analyzer().analyze(image, render=include_annotated)

        response: AnalyzeFrameResponse = {
            'success': True,
            'data': result.to_dict(),
            'processing_time_ms': int((time.time() - start_time) * 1000)
        }
        if include_annotated and result.annotated_frame is not None:
            response['annotated_frame'] = encode_image_base64(result.annotated_frame)

        logger.info(f'[Request {request_id}] {result.state.value}: {result.status_message}')
        return jsonify(response)

    except Exception as e:
        logger.error(f'[Request {request_id}] Error in analyze_frame: {str(e)}', exc_info=True)
        return jsonify({
            'success': False,
            'error': sanitize_error_message(e),
            'error_code': 'INTERNAL_ERROR'
        }), 500


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    logger.info(f'Starting StripScan CV Service on port {port}')
    app.run(host='0.0.0.0', port=port, debug=debug)
