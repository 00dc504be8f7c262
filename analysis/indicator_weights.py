"""
Indicator Weights Loader

Threshold rules for the six mental-health indicators, kept as plain data so they
can be inspected, tested and re-weighted without touching scoring code. Each rule
fires when a metric crosses its threshold and contributes its weight to the
indicator; the indicator total is clamped to 0-100.

Thresholds are fixed. Weights can come from an ML backend (URL), a local JSON
file, runtime updates (PUT /weights/indicators) or the built-in defaults.

JSON format:
  {"depression": {"reduced_smiling": 15, "flat_affect": 18, ...}, "anxiety": {...}}
Partial documents are fine; unknown indicators or rules are ignored on load and
rejected on set_weights().
"""

import copy
import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndicatorRule:
    """metric <op> threshold -> +weight. A missing metric (None) never fires."""
    name: str
    metric: str
    op: str  # "<" or ">"
    threshold: float
    weight: float

    def fires(self, value: Optional[float]) -> bool:
        if value is None:
            return False
        if self.op == "<":
            return value < self.threshold
        return value > self.threshold


INDICATOR_KEYS: List[str] = [
    "depression", "anxiety", "stress", "social_withdrawal", "emotional_instability", "cognitive_load",
]

# Metric names refer to EyeTrackingSample / BehavioralSample fields, plus
# neutral_confidence / happy_confidence (set only when that expression is current).
DEFAULT_RULES: Dict[str, List[IndicatorRule]] = {
    "depression": [
        IndicatorRule("reduced_smiling", "smile_frequency", "<", 0.3, 15),
        IndicatorRule("droopy_eyes", "eye_contact_duration", "<", 0.3, 12),
        IndicatorRule("flat_affect", "neutral_confidence", ">", 0.7, 18),
        IndicatorRule("forced_smile", "happy_confidence", "<", 0.5, 10),
        IndicatorRule("reduced_eye_contact", "eye_contact_duration", "<", 0.4, 12),
        IndicatorRule("slow_blinking", "blink_rate", "<", 6, 8),
        IndicatorRule("downward_gaze", "gaze_stability", "<", 0.4, 10),
        IndicatorRule("unfocused_eyes", "fixation_duration", "<", 0.4, 8),
        IndicatorRule("reduced_head_movement", "head_movement", "<", 0.2, 7),
        IndicatorRule("slumped_posture", "posture_stability", ">", 0.7, 10),
        IndicatorRule("slow_response", "response_time", ">", 1.5, 8),
        IndicatorRule("low_energy", "energy_level", "<", 0.4, 12),
    ],
    "anxiety": [
        IndicatorRule("excessive_blinking", "blink_rate", ">", 20, 20),
        IndicatorRule("rapid_eye_movement", "eye_movement_speed", ">", 0.8, 15),
        IndicatorRule("excessive_head_movement", "head_movement", ">", 0.7, 15),
        IndicatorRule("hasty_response", "response_time", "<", 0.5, 10),
        IndicatorRule("unstable_gaze", "gaze_stability", "<", 0.2, 20),
        IndicatorRule("restlessness", "energy_level", ">", 0.8, 20),
    ],
    "stress": [
        IndicatorRule("dilated_pupils", "pupil_dilation", ">", 0.7, 15),
        IndicatorRule("increased_blinking", "blink_rate", ">", 15, 10),
        IndicatorRule("unstable_posture", "posture_stability", "<", 0.3, 15),
        IndicatorRule("slow_response", "response_time", ">", 1.5, 10),
        IndicatorRule("short_attention", "fixation_duration", "<", 0.3, 15),
        IndicatorRule("low_engagement", "social_engagement", "<", 0.3, 15),
    ],
    "social_withdrawal": [
        IndicatorRule("avoided_eye_contact", "eye_contact_duration", "<", 0.3, 25),
        IndicatorRule("low_engagement", "social_engagement", "<", 0.3, 25),
        IndicatorRule("rare_smiling", "smile_frequency", "<", 0.5, 20),
        IndicatorRule("still_head", "head_movement", "<", 0.3, 15),
        IndicatorRule("low_energy", "energy_level", "<", 0.3, 15),
    ],
    # Scored from the emotion history, not from threshold rules
    "emotional_instability": [],
    "cognitive_load": [
        IndicatorRule("short_attention", "fixation_duration", "<", 0.4, 20),
        IndicatorRule("slow_processing", "response_time", ">", 2.0, 15),
        IndicatorRule("difficulty_focusing", "gaze_stability", "<", 0.3, 15),
        IndicatorRule("restlessness", "posture_stability", "<", 0.4, 10),
        IndicatorRule("rapid_scanning", "eye_movement_speed", ">", 0.6, 10),
    ],
}

# Points per distinct emotion label in the recent history
DEFAULT_INSTABILITY_WEIGHT: float = 15.0


def _default_weights() -> Dict[str, Dict[str, float]]:
    out = {k: {r.name: float(r.weight) for r in rules} for k, rules in DEFAULT_RULES.items()}
    out["emotional_instability"] = {"distinct_emotion": DEFAULT_INSTABILITY_WEIGHT}
    return out


# In-memory weights (updated by load_weights, set_weights)
_current: Dict[str, Dict[str, float]] = _default_weights()


def get_weights() -> Dict[str, Dict[str, float]]:
    """Return current weights per indicator and rule. Safe to modify the returned dict."""
    return copy.deepcopy(_current)


def get_rules(weights: Optional[Dict[str, Dict[str, float]]] = None) -> Dict[str, List[IndicatorRule]]:
    """Rule tables with the given (or current) weights applied."""
    w = weights if weights is not None else _current
    out: Dict[str, List[IndicatorRule]] = {}
    for key, rules in DEFAULT_RULES.items():
        table = w.get(key, {})
        out[key] = [
            IndicatorRule(r.name, r.metric, r.op, r.threshold, float(table.get(r.name, r.weight)))
            for r in rules
        ]
    return out


def set_weights(updates: Dict[str, Dict[str, float]]) -> Dict[str, Dict[str, float]]:
    """
    Partial update of in-memory weights.

    Raises:
        ValueError: unknown indicator/rule, or a weight that is not a non-negative number
    """
    if not isinstance(updates, dict):
        raise ValueError("weights must be an object of indicator -> {rule: weight}")
    staged = copy.deepcopy(_current)
    for key, table in updates.items():
        if key not in staged:
            raise ValueError(f"unknown indicator: {key}")
        if not isinstance(table, dict):
            raise ValueError(f"weights for {key} must be an object")
        for rule, weight in table.items():
            if rule not in staged[key]:
                raise ValueError(f"unknown rule for {key}: {rule}")
            if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight < 0:
                raise ValueError(f"weight for {key}.{rule} must be a non-negative number")
            staged[key][rule] = float(weight)
    _current.clear()
    _current.update(staged)
    return get_weights()


def reset_weights() -> Dict[str, Dict[str, float]]:
    _current.clear()
    _current.update(_default_weights())
    return get_weights()


def _apply(data: dict) -> None:
    if not isinstance(data, dict):
        return
    for key, table in data.items():
        if key not in _current or not isinstance(table, dict):
            continue
        for rule, weight in table.items():
            if rule in _current[key] and isinstance(weight, (int, float)) and not isinstance(weight, bool) and weight >= 0:
                _current[key][rule] = float(weight)


def load_weights() -> Dict[str, Dict[str, float]]:
    """
    Load from INDICATOR_WEIGHTS_URL, else INDICATOR_WEIGHTS_PATH, else defaults.
    Updates in-memory weights and returns get_weights().
    """
    # 1) URL
    url = config.INDICATOR_WEIGHTS_URL
    if url:
        try:
            r = requests.get(url, timeout=5)
            if r.ok:
                reset_weights()
                _apply(r.json())
                return get_weights()
            logger.warning("Indicator weights URL returned HTTP %s; trying file", r.status_code)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Indicator weights URL failed: %s", e)

    # 2) File
    path = config.INDICATOR_WEIGHTS_PATH
    if path and os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            reset_weights()
            _apply(data)
            return get_weights()
        except (OSError, ValueError) as e:
            logger.warning("Indicator weights file %s unreadable: %s", path, e)

    # 3) Defaults
    return reset_weights()
