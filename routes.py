"""
Flask routes for the behavioral assessment engine.

Handles landmark frame ingestion, assessment state/history/reset, the
response-time hook, indicator weights, config and health. All responses are
JSON with camelCase keys.
"""

import math
import threading
from dataclasses import asdict
from typing import Optional

from flask import Blueprint, Flask, jsonify, request

from analysis import indicator_weights
from analysis.emotion_patterns import describe_emotion_pattern, emotion_recommendations
from analysis.landmark_frame import LandmarkFrame
from assessment_detector import DetectionResult, MentalHealthDetector
import config


# Create a blueprint for better organization
api = Blueprint('api', __name__)

# Global assessment detector instance (singleton), created on first use.
assessment_detector: Optional[MentalHealthDetector] = None
_detector_lock = threading.Lock()


def get_detector() -> MentalHealthDetector:
    """Return the detector instance, creating it on first call (lazy init, thread-safe)."""
    global assessment_detector
    if assessment_detector is None:
        with _detector_lock:
            if assessment_detector is None:
                assessment_detector = MentalHealthDetector()
    return assessment_detector


# ============================================================================
# Serialization helpers
# ============================================================================

_EYE_KEYS = {
    "blink_rate": "blinkRate",
    "eye_contact_duration": "eyeContactDuration",
    "gaze_stability": "gazeStability",
    "pupil_dilation": "pupilDilation",
    "eye_movement_speed": "eyeMovementSpeed",
    "fixation_duration": "fixationDuration",
}
_BEHAVIORAL_KEYS = {
    "smile_frequency": "smileFrequency",
    "head_movement": "headMovement",
    "posture_stability": "postureStability",
    "response_time": "responseTime",
    "energy_level": "energyLevel",
    "social_engagement": "socialEngagement",
}
_INDICATOR_KEYS = {
    "depression_score": "depressionScore",
    "anxiety_score": "anxietyScore",
    "stress_level": "stressLevel",
    "social_withdrawal": "socialWithdrawal",
    "emotional_instability": "emotionalInstability",
    "cognitive_load": "cognitiveLoad",
}


def _camel(obj, keys: dict) -> Optional[dict]:
    if obj is None:
        return None
    return {keys[k]: v for k, v in asdict(obj).items()}


def _parse_timestamp(value) -> Optional[float]:
    """Optional tick time in seconds; must be a finite number when present."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError("timestamp must be a finite number of seconds")
    return float(value)


def _emotion_json(sample) -> Optional[dict]:
    if sample is None:
        return None
    return {"emotion": sample.emotion, "confidence": sample.confidence}


def _result_json(result: DetectionResult) -> dict:
    out = {
        "faceDetected": result.face_detected,
        "timestamp": result.timestamp,
        "usedCache": result.used_cache,
        "confidence": result.confidence,
        "emotion": _emotion_json(result.emotion),
        "eyeTracking": _camel(result.eye_tracking, _EYE_KEYS),
        "behavioral": _camel(result.behavioral, _BEHAVIORAL_KEYS),
        "assessment": None,
        "emotionPattern": None,
    }
    a = result.assessment
    if a is not None:
        out["assessment"] = {
            "overallRisk": a.overall_risk.value,
            "indicators": _camel(a.indicators, _INDICATOR_KEYS),
            "recommendations": list(a.recommendations),
            "professionalHelpNeeded": a.professional_help_needed,
            "confidence": a.confidence,
            "depressionFlags": dict(a.depression_flags),
        }
    p = result.emotion_pattern
    if p is not None:
        out["emotionPattern"] = {
            "primary": _emotion_json(p.primary),
            "secondary": _emotion_json(p.secondary),
            "intensity": p.intensity,
            "stability": p.stability,
            "tips": emotion_recommendations(p),
            "description": describe_emotion_pattern(p),
        }
    return out


# ============================================================================
# Assessment Routes
# ============================================================================

@api.route("/assessment/frame", methods=["POST"])
def post_assessment_frame():
    """
    Run one tick on a landmark frame.

    Body:
        {"faceDetected": true, "boundingBox": {...}, "landmarks": [[x, y] * 68],
         "expressions": {"neutral": 0.9, ...}, "timestamp": 12.5 (optional, seconds)}

    Timestamps are on the client's clock. Unless the detector was built or reset
    with an explicit start time, the first tick's timestamp starts the session.

    Returns:
        JSON: DetectionResult (400 on malformed body)
    """
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Body must be a JSON object"}), 400
    try:
        frame = LandmarkFrame.from_dict(data)
        now = _parse_timestamp(data.get("timestamp"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = get_detector().process_frame(frame, now)
        return jsonify(_result_json(result))
    except Exception as e:
        return jsonify({
            "error": "Failed to process frame",
            "details": str(e)
        }), 500


@api.route("/assessment/state", methods=["GET"])
def get_assessment_state():
    """
    Get the latest assessment result.

    Returns:
        JSON: DetectionResult, or 404 when no tick has run since the last reset
    """
    result = get_detector().get_current_result()
    if result is None:
        return jsonify({"error": "No assessment data available"}), 404
    return jsonify(_result_json(result))


@api.route("/assessment/history", methods=["GET"])
def get_assessment_history():
    """Rolling histories (oldest first) used by the aggregator."""
    eye, behavioral, emotions = get_detector().get_history()
    return jsonify({
        "eyeTracking": [_camel(s, _EYE_KEYS) for s in eye],
        "behavioral": [_camel(s, _BEHAVIORAL_KEYS) for s in behavioral],
        "emotions": [_emotion_json(s) for s in emotions],
    })


@api.route("/assessment/reset", methods=["POST"])
def reset_assessment():
    """Start a new session: clears counters, buffers, histories and the current result."""
    data = request.get_json(silent=True) or {}
    try:
        now = _parse_timestamp(data.get("timestamp") if isinstance(data, dict) else None)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    get_detector().reset_session(now)
    return jsonify({"success": True})


@api.route("/assessment/response-time", methods=["POST"])
def post_response_time():
    """
    Record one stimulus response time.

    Body: {"seconds": 1.2}
    """
    if not request.is_json:
        return jsonify({"error": "Request must be JSON"}), 400
    data = request.get_json(silent=True) or {}
    seconds = data.get("seconds") if isinstance(data, dict) else None
    if seconds is None or isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return jsonify({"error": "Missing or invalid 'seconds'"}), 400
    try:
        get_detector().record_response_time(seconds)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"success": True})


# ============================================================================
# Weights and Configuration Routes
# ============================================================================

@api.route("/weights/indicators", methods=["GET", "PUT"])
def indicator_weights_route():
    """
    GET: Return current indicator weights per rule.
    PUT: Partial update. Body: {"depression": {"flat_affect": 20}, ...}. Unknown indicators/rules -> 400.
    """
    if request.method == "GET":
        try:
            return jsonify(indicator_weights.get_weights())
        except Exception as e:
            return jsonify({"error": str(e)}), 500
    if request.method == "PUT":
        if not request.is_json:
            return jsonify({"error": "Request must be JSON"}), 400
        data = request.get_json(silent=True)
        try:
            return jsonify(indicator_weights.set_weights(data))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            return jsonify({"error": str(e)}), 500
    return jsonify({"error": "Method not allowed"}), 405


@api.route("/config/all", methods=["GET"])
def get_all_config():
    """
    Get all configuration in one endpoint.

    Returns:
        JSON: Effective configuration plus any detected setting mismatches
    """
    return jsonify(config.build_config_response())


@api.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


def register_routes(app: Flask) -> None:
    """Attach the API blueprint to the app."""
    app.register_blueprint(api)
