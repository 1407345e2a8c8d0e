# logging_config.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from dotenv import load_dotenv
load_dotenv()
# Use an environment variable for the log file, with a default
LOG_FILE = os.environ.get("LOG_FILE_PATH", "/tmp/ecoquiz_app.log")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
def setup_logging():
    """Configures a rotating file logger plus console output for the entire application."""
    # Get the root logger
    logger = logging.getLogger()

    # Avoid adding handlers multiple times
    if logger.hasHandlers() and any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return

    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Create a rotating file handler: 10MB per file, keep last 5 files
    handler = RotatingFileHandler(LOG_FILE, maxBytes=10*1024*1024, backupCount=5)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # The dev server is usually run in a terminal, so mirror logs to stderr.
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)
