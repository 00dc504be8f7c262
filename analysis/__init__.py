"""
Analysis package for the behavioral assessment engine.

This package contains the per-frame input types, the session state shared by the
analyzers, the eye-tracking and behavioral analyzers, the indicator weight tables,
the mental-health aggregator and emotion pattern analysis.
"""

from .landmark_frame import BoundingBox, LandmarkFrame, LandmarkProvider
from .session_state import SessionState
from .eye_tracking import EyeTrackingAnalyzer, EyeTrackingSample
from .behavioral import BehavioralAnalyzer, BehavioralSample
from .mental_health import (
    EmotionSample,
    MentalHealthAggregator,
    MentalHealthAssessment,
    MentalHealthIndicators,
    RiskLevel,
)
from .emotion_patterns import EmotionPattern, analyze_emotion_pattern

__all__ = [
    'BoundingBox',
    'LandmarkFrame',
    'LandmarkProvider',
    'SessionState',
    'EyeTrackingAnalyzer',
    'EyeTrackingSample',
    'BehavioralAnalyzer',
    'BehavioralSample',
    'EmotionSample',
    'MentalHealthAggregator',
    'MentalHealthAssessment',
    'MentalHealthIndicators',
    'RiskLevel',
    'EmotionPattern',
    'analyze_emotion_pattern',
]
