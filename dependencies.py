"""
Dependency container for the EcoQuiz backend.
Provides lazily-built, process-wide handles to the AI provider clients and the
services built on top of them, so blueprints never construct clients themselves
and tests can swap any of them out.
"""

import logging
import os
import random
import threading
from dotenv import load_dotenv
from google import genai
from groq import Groq

from api.error_utils import UpstreamError

load_dotenv()

# --- Environment variables ---
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
GROQ_API_KEY = os.environ.get("GROQ_API_KEY")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash-image")
GEMINI_IMAGE_MODEL = os.environ.get("GEMINI_IMAGE_MODEL", GEMINI_MODEL)
GROQ_MODEL = os.environ.get("GROQ_MODEL", "openai/gpt-oss-20b")
QUIZ_TEMPERATURE = float(os.environ.get("QUIZ_TEMPERATURE", "0.7"))
TIP_TEMPERATURE = float(os.environ.get("TIP_TEMPERATURE", "0.8"))
CLASSIFY_MAX_IMAGE_EDGE = int(os.environ.get("CLASSIFY_MAX_IMAGE_EDGE", "1024"))
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
MAX_QUIZ_SESSIONS = int(os.environ.get("MAX_QUIZ_SESSIONS", "1000"))
PORT = int(os.environ.get("PORT", "3000"))

if not GEMINI_API_KEY:
    logging.warning("GEMINI_API_KEY env var is not defined - classification and quiz images will fail.")
if not GROQ_API_KEY:
    logging.warning("GROQ_API_KEY env var is not defined - quiz items and tips will use fallback data.")

# Re-entrant: service factories fetch the client handles they wrap.
_lock = threading.RLock()
_handles = {}


def _get_or_create(name, factory):
    """Build a handle once per process; later calls return the same object."""
    with _lock:
        if name not in _handles:
            _handles[name] = factory()
            logging.info(f"Initialized '{name}' handle")
        return _handles[name]


def override(name, handle):
    """Install a handle explicitly (used by tests and the CLI)."""
    with _lock:
        _handles[name] = handle


def reset():
    with _lock:
        _handles.clear()


# --- Provider clients ---
def get_gemini_client():
    try:
        return _get_or_create("gemini_client", lambda: genai.Client(api_key=GEMINI_API_KEY))
    except Exception as e:
        logging.error(f"Could not create Gemini client: {e}")
        raise UpstreamError(f"Gemini client unavailable: {e}") from e


def get_groq_client():
    return _get_or_create("groq_client", lambda: Groq(api_key=GROQ_API_KEY))


def groq_client_or_none():
    # Groq consumers fall back to static data, so a missing key must not break them.
    try:
        return get_groq_client()
    except Exception as e:
        logging.error(f"Could not create Groq client, fallback data will be used: {e}")
        return None


# --- Services ---
def get_classifier():
    from gemini_service import ClassificationGateway
    return _get_or_create("classifier", lambda: ClassificationGateway(
        get_gemini_client(), model=GEMINI_MODEL, max_image_edge=CLASSIFY_MAX_IMAGE_EDGE))


def get_image_generator():
    from gemini_service import ImageGenerator
    return _get_or_create("image_generator", lambda: ImageGenerator(get_gemini_client(), model=GEMINI_IMAGE_MODEL))


def get_question_synthesizer():
    from quiz_generator import QuestionSynthesizer
    return _get_or_create("question_synthesizer", lambda: QuestionSynthesizer(
        groq_client_or_none(), get_image_generator(), model=GROQ_MODEL,
        temperature=QUIZ_TEMPERATURE, rng=random.Random()))


def get_tip_provider():
    from tip_generator import TipProvider
    return _get_or_create("tip_provider", lambda: TipProvider(
        groq_client_or_none(), model=GROQ_MODEL, temperature=TIP_TEMPERATURE, rng=random.Random()))


def get_session_store():
    from quiz_session import SessionStore
    return _get_or_create("session_store", lambda: SessionStore(max_sessions=MAX_QUIZ_SESSIONS))


def provider_status():
    """Configuration readiness for the health endpoint; never calls the providers."""
    return {
        "gemini": {"configured": bool(GEMINI_API_KEY), "model": GEMINI_MODEL, "imageModel": GEMINI_IMAGE_MODEL},
        "groq": {"configured": bool(GROQ_API_KEY), "model": GROQ_MODEL},
    }
