import logging
import datetime
from flask import Blueprint, jsonify

import dependencies
from extensions import limiter

status_bp = Blueprint('status_bp', __name__)

# --- Helper Check Functions ---

def check_gemini():
    """Checks that the Gemini key is configured. Does not spend a request on the provider."""
    status = dependencies.provider_status()["gemini"]
    if not status["configured"]:
        return {"status": "ERROR", "details": "GEMINI_API_KEY is not set; classification and quiz images will fail."}
    return {"status": "OK", "details": f"Using models '{status['model']}' / '{status['imageModel']}'."}

def check_groq():
    """Checks that the Groq key is configured. Without it, quiz items and tips come from fallback data."""
    status = dependencies.provider_status()["groq"]
    if not status["configured"]:
        return {"status": "DEGRADED", "details": "GROQ_API_KEY is not set; serving fallback quiz items and tips."}
    return {"status": "OK", "details": f"Using model '{status['model']}'."}

def check_sessions():
    try:
        active = len(dependencies.get_session_store())
        return {"status": "OK", "details": f"{active} active quiz session(s)."}
    except Exception as e:
        return {"status": "ERROR", "details": f"Session store unavailable: {str(e)}"}


@status_bp.route('/health', methods=['GET'])
@limiter.exempt
def health():
    checks = {
        "gemini": check_gemini(),
        "groq": check_groq(),
        "sessions": check_sessions(),
    }
    overall = "OK" if all(c["status"] == "OK" for c in checks.values()) else "DEGRADED"
    if overall != "OK":
        logging.warning(f"Health check degraded: {checks}")
    return jsonify({
        "status": overall,
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "checks": checks,
    }), 200
