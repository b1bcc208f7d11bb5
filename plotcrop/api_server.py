#!/usr/bin/env python3
"""
Plot Crop API Server
Accepts a floor-plan / land-plot picture and returns it cropped to the plan
rectangle (optionally mirrored) as a base64 PNG data URL.
"""

import os
import logging
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify
from flask_cors import CORS

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from .exceptions import DecodeError
from .models.crop_config import CropConfig
from .pipeline.plot_image import mirror_image, process_plot_image

app = Flask(__name__)
CORS(app)  # Enable CORS for the map front-end

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,gif,bmp,webp").lower().split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024
# Upper bound on client-requested dilation passes
MAX_DILATION_ITERATIONS = int(os.getenv("MAX_DILATION_ITERATIONS", "20"))

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

logger = logging.getLogger(__name__)

CONFIG_FIELDS = (
    "edge_low_threshold",
    "edge_high_threshold",
    "dilation_iterations",
    "min_area_percent",
    "inset_margin_px",
)
TRUTHY = {"1", "true", "yes", "on"}


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


def request_options() -> Dict[str, Any]:
    """Merge form fields and JSON body into one dict (JSON wins)."""
    options: Dict[str, Any] = dict(request.form.items())
    if request.is_json:
        body = request.get_json(silent=True) or {}
        if isinstance(body, dict):
            options.update(body)
    return options


def read_source(options: Dict[str, Any]) -> Tuple[Optional[Any], Optional[str]]:
    """
    Pull the image source out of the request.

    Returns:
        (source, error_message); exactly one of them is None.
    """
    if 'image' in request.files:
        file = request.files['image']
        if file.filename == '':
            return None, 'No file selected'
        if not allowed_file(file.filename):
            return None, f'File type not allowed: {file.filename}'
        return file.read(), None

    image_url = options.get('image_url')
    if not image_url:
        return None, 'No image provided'
    # Local paths are never accepted over HTTP.
    if not isinstance(image_url, str) or not image_url.startswith(("data:", "http://", "https://")):
        return None, 'image_url must be a data: or http(s):// URL'
    return image_url, None


@app.route('/api/crop', methods=['POST'])
def crop():
    """Crop an uploaded image (or image URL) to its plan rectangle."""
    options = request_options()
    source, error = read_source(options)
    if error:
        return jsonify({'success': False, 'message': error}), 400

    try:
        config = CropConfig.from_env().with_overrides(
            **{name: options.get(name) for name in CONFIG_FIELDS}
        )
    except ValueError as e:
        return jsonify({'success': False, 'message': f'Invalid crop settings: {e}'}), 400
    if config.dilation_iterations > MAX_DILATION_ITERATIONS:
        return jsonify({'success': False,
                        'message': f'dilation_iterations is capped at {MAX_DILATION_ITERATIONS}'}), 400

    mirror_x = as_bool(options.get('mirror_x'))
    mirror_y = as_bool(options.get('mirror_y'))

    try:
        result = process_plot_image(source, mirror_x=mirror_x, mirror_y=mirror_y, config=config)
    except DecodeError as e:
        logger.error(f"Decode error: {e}")
        return jsonify({'success': False, 'message': f'Could not load image: {e}'}), 422

    logger.info(f"Cropped image to {result.width}x{result.height} (mirror_x={mirror_x}, mirror_y={mirror_y})")
    return jsonify({
        'success': True,
        'image': result.data_url,
        'width': result.width,
        'height': result.height,
    })


@app.route('/api/mirror', methods=['POST'])
def mirror():
    """Flip an image without cropping it."""
    options = request_options()
    source, error = read_source(options)
    if error:
        return jsonify({'success': False, 'message': error}), 400

    try:
        result = mirror_image(source,
                              mirror_x=as_bool(options.get('mirror_x')),
                              mirror_y=as_bool(options.get('mirror_y')))
    except DecodeError as e:
        logger.error(f"Decode error: {e}")
        return jsonify({'success': False, 'message': f'Could not load image: {e}'}), 422

    return jsonify({
        'success': True,
        'image': result.data_url,
        'width': result.width,
        'height': result.height,
    })


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Plot Crop API is running',
    })


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Plot Crop API on {host}:{port} (max upload {MAX_CONTENT_LENGTH // (1024 * 1024)}MB)")
    app.run(host=host, port=port, threaded=True)


if __name__ == '__main__':
    main()
