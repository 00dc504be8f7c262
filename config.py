"""
=============================================================================
CONFIGURATION FOR THE BEHAVIORAL ASSESSMENT ENGINE (config.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This file holds ALL configurable settings for the project in one place. Other
files read from it. Values come from the environment (e.g. your .env file or
system variables) so you can tune thresholds per deployment without touching
code.

MAIN GROUPS OF SETTINGS:
------------------------
  1. Session buffers   - How many recent gaze/head positions and samples we keep.
  2. Event detection   - Blink and smile thresholds and debounce windows.
  3. Confidence        - How many samples are needed before we trust a result.
  4. Indicator weights - Where to load custom weight tables from (URL or file).
  5. Logging           - Log level and optional per-tick diagnostics.
  6. Server            - Host, port, and debug mode for the web server.

HOW VALUES ARE CHOSEN:
---------------------
  - Environment variables (e.g. HISTORY_MAX_LENGTH) override everything.
  - If an env var is not set, we use the default the engine was calibrated with.
=============================================================================
"""

import os
from typing import List, Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


# ============================================================================
# SESSION BUFFERS (rolling history and position buffers)
# ============================================================================
# Rolling history used by the aggregator (eye, behavioral, emotion samples).
# Each of the three queues keeps at most this many entries; oldest dropped first.
HISTORY_MAX_LENGTH: int = max(1, int(os.getenv("HISTORY_MAX_LENGTH", "10")))

# Recent gaze and head positions kept in the session state for stability/speed.
POSITION_BUFFER_SIZE: int = max(2, int(os.getenv("POSITION_BUFFER_SIZE", "10")))

# Full eye/behavioral analysis runs at most once per this interval (seconds).
# In between, cached samples are reused and only the expression is refreshed.
FULL_ANALYSIS_INTERVAL_SEC: float = float(os.getenv("FULL_ANALYSIS_INTERVAL_SEC", "0.5"))

# ============================================================================
# EVENT DETECTION (blinks, smiles, eye contact, gaze)
# ============================================================================
# Eye aspect ratio below this counts as a closed eye.
BLINK_EAR_THRESHOLD: float = float(os.getenv("BLINK_EAR_THRESHOLD", "0.25"))
# Minimum time between two counted blinks (one physical blink spans several ticks).
BLINK_DEBOUNCE_SEC: float = float(os.getenv("BLINK_DEBOUNCE_SEC", "0.2"))
# Minimum time between two counted smiles.
SMILE_DEBOUNCE_SEC: float = float(os.getenv("SMILE_DEBOUNCE_SEC", "1.0"))
# Eye contact when eye center is within this fraction of face-box width from the box center.
EYE_CONTACT_THRESHOLD_RATIO: float = float(os.getenv("EYE_CONTACT_THRESHOLD_RATIO", "0.1"))
# Gaze drift (pixels) that maps to zero stability.
GAZE_NORMALIZATION_PX: float = float(os.getenv("GAZE_NORMALIZATION_PX", "100"))

# ============================================================================
# CONFIDENCE (sample-count tiers)
# ============================================================================
# Fewer samples than LOW -> 0.3, fewer than HIGH -> 0.6, otherwise 0.8.
# Note: with the default HISTORY_MAX_LENGTH (10) the HIGH tier (15) cannot be
# reached. See config_mismatches() and DESIGN.md.
CONFIDENCE_LOW_SAMPLES: int = int(os.getenv("CONFIDENCE_LOW_SAMPLES", "5"))
CONFIDENCE_HIGH_SAMPLES: int = int(os.getenv("CONFIDENCE_HIGH_SAMPLES", "15"))

# ============================================================================
# INDICATOR WEIGHTS (optional custom weight tables)
# ============================================================================
# JSON format: {"depression": {"reduced_smiling": 15, ...}, "anxiety": {...}}
# URL is tried first, then the local file, then built-in defaults.
INDICATOR_WEIGHTS_URL: Optional[str] = os.getenv("INDICATOR_WEIGHTS_URL") or None
INDICATOR_WEIGHTS_PATH: str = os.getenv("INDICATOR_WEIGHTS_PATH", "weights/indicator_weights.json")

# ============================================================================
# LOGGING
# ============================================================================
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
# When True, log the per-tick samples and indicator scores every N ticks.
ASSESSMENT_DIAGNOSTIC_LOGGING: bool = _env_bool("ASSESSMENT_DIAGNOSTIC_LOGGING", "false")
ASSESSMENT_DIAGNOSTIC_LOG_INTERVAL: int = max(1, int(os.getenv("ASSESSMENT_DIAGNOSTIC_LOG_INTERVAL", "20")))

# ============================================================================
# Application Configuration
# ============================================================================
FLASK_PORT: int = int(os.getenv("FLASK_PORT", "5000"))
FLASK_DEBUG: bool = _env_bool("FLASK_DEBUG", "false")
FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")

# ============================================================================
# Helper Functions
# ============================================================================

def config_mismatches() -> List[str]:
    """
    Return human-readable descriptions of settings that contradict each other.

    Does not raise; callers decide whether to log.
    """
    problems = []
    if CONFIDENCE_HIGH_SAMPLES > HISTORY_MAX_LENGTH:
        problems.append(
            f"CONFIDENCE_HIGH_SAMPLES ({CONFIDENCE_HIGH_SAMPLES}) exceeds HISTORY_MAX_LENGTH "
            f"({HISTORY_MAX_LENGTH}); the top confidence tier is unreachable"
        )
    if CONFIDENCE_LOW_SAMPLES > HISTORY_MAX_LENGTH:
        problems.append(
            f"CONFIDENCE_LOW_SAMPLES ({CONFIDENCE_LOW_SAMPLES}) exceeds HISTORY_MAX_LENGTH "
            f"({HISTORY_MAX_LENGTH}); confidence never leaves the lowest tier"
        )
    return problems


def build_config_response() -> dict:
    """
    Build the complete configuration response for GET /config/all.
    Aggregates all settings into a single dictionary.
    """
    return {
        "session": {
            "historyMaxLength": HISTORY_MAX_LENGTH,
            "positionBufferSize": POSITION_BUFFER_SIZE,
            "fullAnalysisIntervalSec": FULL_ANALYSIS_INTERVAL_SEC,
        },
        "events": {
            "blinkEarThreshold": BLINK_EAR_THRESHOLD,
            "blinkDebounceSec": BLINK_DEBOUNCE_SEC,
            "smileDebounceSec": SMILE_DEBOUNCE_SEC,
            "eyeContactThresholdRatio": EYE_CONTACT_THRESHOLD_RATIO,
            "gazeNormalizationPx": GAZE_NORMALIZATION_PX,
        },
        "confidence": {
            "lowSamples": CONFIDENCE_LOW_SAMPLES,
            "highSamples": CONFIDENCE_HIGH_SAMPLES,
        },
        "indicatorWeights": {
            "url": INDICATOR_WEIGHTS_URL,
            "path": INDICATOR_WEIGHTS_PATH,
        },
        "logging": {
            "level": LOG_LEVEL,
            "diagnostics": ASSESSMENT_DIAGNOSTIC_LOGGING,
            "diagnosticInterval": ASSESSMENT_DIAGNOSTIC_LOG_INTERVAL,
        },
        "mismatches": config_mismatches(),
    }
