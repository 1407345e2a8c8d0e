import logging
from flask import Blueprint, request, jsonify

import dependencies
from extensions import limiter
from .error_utils import EcoQuizError, bad_request_error, error_response_from, handle_exception

core_bp = Blueprint('core_bp', __name__)


@core_bp.route('/classify', methods=['POST'])
@core_bp.route('/api/analyze', methods=['POST'])
@limiter.limit("30 per minute")
def classify_waste():
    """
    Classifies a photographed waste item into one of the three Colombian bins.
    Expects a multipart upload with the photo in the `image` field.
    """
    image_file = request.files.get('image')
    if image_file is None:
        return bad_request_error("No se proporcionó ninguna imagen.")

    try:
        image_bytes = image_file.read()
        result = dependencies.get_classifier().classify(image_bytes, image_file.mimetype)
        return jsonify(result.to_api()), 200
    except EcoQuizError as e:
        return error_response_from(e, "classify endpoint")
    except Exception as e:
        return handle_exception(e, "classify endpoint")


@core_bp.route('/tip', methods=['GET'])
@core_bp.route('/api/tips', methods=['GET'])
@limiter.exempt
def get_tip():
    """Returns a short recycling tip. Falls back to built-in tips, so this never fails."""
    tip = dependencies.get_tip_provider().next_tip()
    logging.info("Served recycling tip")
    return jsonify(tip.to_api()), 200
