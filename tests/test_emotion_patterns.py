"""
Emotion pattern tests.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from analysis.emotion_patterns import (
    DEFAULT_TIPS,
    EMOTION_TIPS,
    UNSTABLE_TIPS,
    analyze_emotion_pattern,
    describe_emotion_pattern,
    emotion_recommendations,
)
from analysis.mental_health import EmotionSample


def _samples(*labels, confidence=0.9):
    return [EmotionSample(label, confidence) for label in labels]


class TestAnalyzeEmotionPattern(unittest.TestCase):

    def test_empty_input(self):
        self.assertIsNone(analyze_emotion_pattern([]))

    def test_primary_is_latest(self):
        p = analyze_emotion_pattern(_samples("sad", "happy"))
        self.assertEqual(p.primary.emotion, "happy")

    def test_intensity_bands(self):
        for conf, expected in [(0.8, "high"), (0.6, "medium"), (0.59, "low")]:
            p = analyze_emotion_pattern([EmotionSample("neutral", conf)])
            self.assertEqual(p.intensity, expected, msg=str(conf))

    def test_stability_bands(self):
        self.assertEqual(analyze_emotion_pattern(_samples("sad", "happy")).stability, "stable")
        self.assertEqual(analyze_emotion_pattern(_samples("sad", "sad", "sad")).stability, "stable")
        self.assertEqual(analyze_emotion_pattern(_samples("sad", "happy", "sad")).stability, "fluctuating")
        self.assertEqual(
            analyze_emotion_pattern(_samples("sad", "happy", "angry", "neutral")).stability, "unstable"
        )

    def test_only_last_five_samples_count(self):
        p = analyze_emotion_pattern(_samples("angry", "fearful", "happy", "happy", "happy", "happy", "happy"))
        self.assertEqual(p.stability, "stable")
        self.assertIsNone(p.secondary)

    def test_secondary_is_second_most_frequent(self):
        p = analyze_emotion_pattern(_samples("happy", "sad", "happy", "sad", "happy"))
        self.assertEqual(p.secondary.emotion, "sad")
        self.assertIsNone(analyze_emotion_pattern(_samples("happy")).secondary)

    def test_secondary_tie_keeps_first_seen(self):
        p = analyze_emotion_pattern(_samples("neutral", "neutral", "sad", "angry"))
        self.assertEqual(p.secondary.emotion, "sad")


class TestEmotionRecommendations(unittest.TestCase):

    def test_tips_by_primary(self):
        p = analyze_emotion_pattern(_samples("sad"))
        self.assertEqual(emotion_recommendations(p), EMOTION_TIPS["sad"])

    def test_unknown_primary_uses_default(self):
        p = analyze_emotion_pattern(_samples("surprised"))
        self.assertEqual(emotion_recommendations(p), DEFAULT_TIPS)

    def test_unstable_adds_professional_tips(self):
        p = analyze_emotion_pattern(_samples("sad", "happy", "angry", "fearful"))
        tips = emotion_recommendations(p)
        self.assertEqual(tips[-2:], UNSTABLE_TIPS)
        self.assertEqual(tips[:-2], EMOTION_TIPS["fearful"])

    def test_description(self):
        p = analyze_emotion_pattern(_samples("happy", "sad", "sad"))
        text = describe_emotion_pattern(p)
        self.assertIn("feeling sad", text)
        self.assertIn("strong intensity", text)
        self.assertIn("changing", text)
        self.assertIn("happy", text)


if __name__ == "__main__":
    unittest.main()
