"""
Emotion pattern analysis over the most recent expression samples.

Summarizes the last few (label, confidence) pairs into a primary/secondary emotion,
an intensity band and a stability band, and turns that into short tips for the UI.
"""

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from analysis.mental_health import EmotionSample

# Samples considered for stability and the secondary emotion
PATTERN_WINDOW = 5

EMOTION_TIPS = {
    "happy": [
        "Keep up this positive energy!",
        "Share your happiness with others",
    ],
    "sad": [
        "Try doing an activity you enjoy",
        "Talk with someone you trust",
        "Do some deep breathing exercises",
    ],
    "angry": [
        "Take a deep breath and count to 10",
        "Try physical activity to release the energy",
        "Identify what is causing your anger",
    ],
    "fearful": [
        "Remind yourself that this feeling will pass",
        "Try the 5-4-3-2-1 grounding technique",
        "Reach out to someone close to you",
    ],
    "neutral": [
        "Your emotional state looks balanced",
        "This is a good moment for reflection",
    ],
}
DEFAULT_TIPS = [
    "Pay attention to how you feel right now",
    "Try a calming activity",
]
UNSTABLE_TIPS = [
    "Consider talking to a professional",
    "Try mindfulness techniques to calm your mind",
]


@dataclass(frozen=True)
class EmotionPattern:
    primary: EmotionSample
    secondary: Optional[EmotionSample]
    intensity: str  # "low" | "medium" | "high"
    stability: str  # "stable" | "fluctuating" | "unstable"


def _intensity(confidence: float) -> str:
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.6:
        return "medium"
    return "low"


def _stability(window: Sequence[EmotionSample]) -> str:
    if len(window) < 3:
        return "stable"
    distinct = len({s.emotion for s in window})
    if distinct == 1:
        return "stable"
    if distinct <= 3:
        return "fluctuating"
    return "unstable"


def _secondary(window: Sequence[EmotionSample]) -> Optional[EmotionSample]:
    """Second most frequent label (ties keep first-seen order); its first sample is returned."""
    if len(window) < 2:
        return None
    ranked = Counter(s.emotion for s in window).most_common()
    if len(ranked) < 2:
        return None
    label = ranked[1][0]
    return next(s for s in window if s.emotion == label)


def analyze_emotion_pattern(samples: Sequence[EmotionSample]) -> Optional[EmotionPattern]:
    """Pattern of the given samples (oldest first), or None when there are none."""
    if not samples:
        return None
    window = list(samples)[-PATTERN_WINDOW:]
    latest = window[-1]
    return EmotionPattern(
        primary=latest,
        secondary=_secondary(window),
        intensity=_intensity(latest.confidence),
        stability=_stability(window),
    )


def emotion_recommendations(pattern: EmotionPattern) -> List[str]:
    tips = list(EMOTION_TIPS.get(pattern.primary.emotion, DEFAULT_TIPS))
    if pattern.stability == "unstable":
        tips.extend(UNSTABLE_TIPS)
    return tips


def describe_emotion_pattern(pattern: EmotionPattern) -> str:
    """One-paragraph plain-language summary of a pattern."""
    text = f"You appear to be feeling {pattern.primary.emotion}"
    text += {
        "high": " with strong intensity",
        "medium": " with moderate intensity",
    }.get(pattern.intensity, " with mild intensity")
    text += {
        "stable": ". Your emotions look stable and consistent.",
        "fluctuating": ". Your emotions are changing somewhat.",
    }.get(pattern.stability, ". Your emotions look unstable and keep changing.")
    if pattern.secondary is not None:
        text += f" Some {pattern.secondary.emotion} was also detected."
    return text
