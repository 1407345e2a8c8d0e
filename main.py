# FILE: ecoquiz-backend/main.py

import logging
from flask import Flask, jsonify
from dotenv import load_dotenv
from pydantic import ValidationError
from logging_config import setup_logging
from extensions import limiter, cors

# --- SETUP & CONFIG ---
# Load environment variables for the Flask app process.
load_dotenv()
setup_logging()

import dependencies
from api.error_utils import EcoQuizError, error_response_from

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024  # photos from phones are a few MB at most

# --- Initialize Extensions ---
app.config["RATELIMIT_STORAGE_URI"] = dependencies.RATELIMIT_STORAGE_URI
limiter.init_app(app)
cors.init_app(app, origins=dependencies.CORS_ORIGINS.split(","))

# --- Import and Register Blueprints ---
from api.core import core_bp
from api.quiz import quiz_bp
from api.status import status_bp

app.register_blueprint(core_bp, url_prefix='/', strict_slashes=False)
app.register_blueprint(quiz_bp, url_prefix='/', strict_slashes=False)
app.register_blueprint(status_bp, url_prefix='/', strict_slashes=False)

# --- Global Error Handlers ---
@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({"error_code": "BAD_REQUEST", "details": e.errors(include_url=False)}), 400

@app.errorhandler(EcoQuizError)
def handle_ecoquiz_error(e):
    return error_response_from(e, "unhandled")

@app.errorhandler(404)
def resource_not_found(e):
    """Handles 404 Not Found errors for a clean API response."""
    return jsonify(error_code="NOT_FOUND", message="The requested resource was not found."), 404

@app.errorhandler(413)
def payload_too_large(e):
    return jsonify(error_code="INVALID_REQUEST", message="La imagen es demasiado grande."), 413

@app.errorhandler(429)
def rate_limited(e):
    return jsonify(error_code="RATE_LIMITED", message=f"Too many requests: {e.description}"), 429

@app.errorhandler(500)
def internal_server_error(e):
    """Handles unexpected 500 Internal Server Errors for a clean API response."""
    logging.critical(f"An unhandled exception occurred: {e}", exc_info=True)
    return jsonify(error_code="INTERNAL_SERVER_ERROR", message="An unexpected error occurred on the server."), 500


if __name__ == '__main__':
    logging.info(f"Server running on http://localhost:{dependencies.PORT} (Gemini model: {dependencies.GEMINI_MODEL})")
    app.run(host='0.0.0.0', port=dependencies.PORT)
