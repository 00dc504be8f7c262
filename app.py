"""
=============================================================================
BEHAVIORAL ASSESSMENT ENGINE - APPLICATION ENTRY POINT (app.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This is the "front door" of the server. When you run "python app.py", the computer
starts a web server that the presentation layer (the web page showing the
assessment) talks to. The server:

  1. Receives one landmark frame per tick from the browser (the face detector
     runs client-side) and returns the current assessment.
  2. Answers questions like "what is the current risk level?" or "what are the
     recent samples?".
  3. Lets an ML backend read and update the indicator weights.

The actual URL handlers are defined in routes.py; the analysis itself lives in
the analysis/ package and assessment_detector.py.

HOW TO RUN:
-----------
  - From project root:  python app.py
  - By default the app is at:  http://localhost:5000

CONFIGURATION:
--------------
  - Settings come from the .env file and config.py (see config.py for the list).
=============================================================================
"""

# ---------------------------------------------------------------------------
# Step 1: Load environment variables from .env (before anything else)
# ---------------------------------------------------------------------------
# config.py reads os.getenv at import time, so .env must be loaded first.
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

# ---------------------------------------------------------------------------
# Step 2: Import the web framework and our own modules
# ---------------------------------------------------------------------------
from flask import Flask
from flask_cors import CORS
from flask_compress import Compress

from analysis import indicator_weights
from routes import register_routes
import config

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Step 3: Warn about settings that contradict each other
# ---------------------------------------------------------------------------
for _problem in config.config_mismatches():
    logger.warning("Config mismatch: %s", _problem)


def create_app() -> Flask:
    """
    Create and configure the Flask application (the web server).

    What it does:
      - Creates a new Flask "app" object.
      - Enables CORS so the browser can call our API from a different origin.
      - Enables compression for larger responses (e.g. /assessment/history).
      - Loads indicator weights (URL, then file, then built-in defaults).
      - Registers all URL routes by calling register_routes(app).

    Returns:
        The configured Flask application.
    """
    app = Flask(__name__)

    # Allow the browser to call our API from another origin.
    # In production you would restrict this to specific domains.
    CORS(app, resources={r"/*": {"origins": "*"}})

    # Compress responses (gzip) when the client supports it.
    Compress(app)

    indicator_weights.load_weights()

    # Attach all URL rules (/assessment/frame, /weights/indicators, etc.) to this app.
    register_routes(app)

    return app


# ---------------------------------------------------------------------------
# Create the one global Flask application
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Run the server when this file is executed directly (e.g. "python app.py")
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    # FLASK_DEBUG=true: Flask's development server (auto-reload, debugger).
    # Otherwise: Waitress, a production-style multi-threaded server.
    if config.FLASK_DEBUG:
        app.run(
            host=config.FLASK_HOST,
            port=config.FLASK_PORT,
            debug=True
        )
    else:
        import waitress
        waitress.serve(app, host=config.FLASK_HOST, port=config.FLASK_PORT, threads=6)
