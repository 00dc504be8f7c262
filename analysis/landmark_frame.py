"""
Landmark Frame Module

This module defines the per-tick input of the assessment engine (a detected face
with 68 facial landmarks and expression confidences) and an abstract interface
for whatever backend produces it. Face detection itself happens outside this
project; anything that can fill a LandmarkFrame can drive the engine.

Landmark layout (68-point convention):
  jaw 0-16, left eyebrow 17-21, right eyebrow 22-26, nose 27-35,
  left eye 36-41, right eye 42-47, mouth 48-67.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
import numpy as np


NUM_LANDMARKS = 68

FACE_REGIONS: Dict[str, Tuple[int, int]] = {
    "jaw": (0, 17),
    "left_eyebrow": (17, 22),
    "right_eyebrow": (22, 27),
    "nose": (27, 36),
    "left_eye": (36, 42),
    "right_eye": (42, 48),
    "mouth": (48, 68),
}

CANONICAL_EMOTIONS = ("neutral", "happy", "sad", "angry", "fearful", "disgusted", "surprised")

# Alternate labels seen from other detectors and the localized UI.
EMOTION_ALIASES: Dict[str, str] = {
    "happiness": "happy",
    "sadness": "sad",
    "anger": "angry",
    "fear": "fearful",
    "disgust": "disgusted",
    "surprise": "surprised",
    "contempt": "disgusted",
    "bahagia": "happy",
    "sedih": "sad",
    "marah": "angry",
    "takut": "fearful",
    "jijik": "disgusted",
    "terkejut": "surprised",
    "netral": "neutral",
}


def normalize_emotion_label(label: Optional[str]) -> str:
    """Map any detector/localized label to the canonical lowercase set ('neutral' if unknown)."""
    key = (label or "").strip().lower()
    if key in CANONICAL_EMOTIONS:
        return key
    return EMOTION_ALIASES.get(key, "neutral")


@dataclass(frozen=True)
class BoundingBox:
    """Face detection box in pixel coordinates (x, y = top-left corner)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> np.ndarray:
        return np.array([self.x + self.width / 2.0, self.y + self.height / 2.0])

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def is_degenerate(self) -> bool:
        return not (np.isfinite(self.width) and self.width > 0)


@dataclass
class LandmarkFrame:
    """
    One tick of detector output.

    The engine reads this structure but never mutates it.
    """
    face_detected: bool
    bounding_box: Optional[BoundingBox] = None
    landmarks: Optional[np.ndarray] = None  # (68, 2) pixel coordinates
    expressions: Dict[str, float] = field(default_factory=dict)  # label -> confidence (0-1)

    def is_usable(self) -> bool:
        """True when a face was found and all 68 landmarks are present."""
        if not self.face_detected or self.bounding_box is None or self.landmarks is None:
            return False
        lm = np.asarray(self.landmarks)
        return lm.ndim == 2 and lm.shape[0] >= NUM_LANDMARKS and lm.shape[1] >= 2

    def region(self, name: str) -> np.ndarray:
        """Return the (N, 2) points of a named face region."""
        start, end = FACE_REGIONS[name]
        return np.asarray(self.landmarks, dtype=np.float64)[start:end, :2]

    def dominant_expression(self) -> Tuple[str, float]:
        """Highest-confidence expression as (canonical label, confidence)."""
        if not self.expressions:
            return "neutral", 0.0
        label, conf = max(self.expressions.items(), key=lambda kv: kv[1])
        return normalize_emotion_label(label), float(np.clip(conf, 0.0, 1.0))

    @classmethod
    def no_face(cls) -> "LandmarkFrame":
        return cls(face_detected=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LandmarkFrame":
        """
        Build a frame from a JSON payload.

        Expected keys: faceDetected, boundingBox {x, y, width, height},
        landmarks [[x, y] * 68], expressions {label: confidence}.

        Raises:
            ValueError: if the payload is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("frame must be a JSON object")
        face_detected = bool(data.get("faceDetected", False))
        if not face_detected:
            return cls.no_face()

        box = data.get("boundingBox")
        if not isinstance(box, dict):
            raise ValueError("boundingBox is required when faceDetected is true")
        try:
            bbox = BoundingBox(
                x=float(box.get("x", 0.0)),
                y=float(box.get("y", 0.0)),
                width=float(box["width"]),
                height=float(box["height"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"invalid boundingBox: {e}")

        try:
            landmarks = np.asarray(data.get("landmarks") or [], dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid landmarks: {e}")
        if landmarks.size and (landmarks.ndim != 2 or landmarks.shape[1] < 2):
            raise ValueError("landmarks must be a list of [x, y] points")
        if not np.all(np.isfinite(landmarks)):
            raise ValueError("landmarks must be finite numbers")

        expressions = data.get("expressions") or {}
        if not isinstance(expressions, dict):
            raise ValueError("expressions must be an object of label -> confidence")
        try:
            expressions = {str(k): float(v) for k, v in expressions.items()}
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid expressions: {e}")

        return cls(
            face_detected=True,
            bounding_box=bbox,
            landmarks=landmarks if landmarks.size else None,
            expressions=expressions,
        )


class LandmarkProvider(ABC):
    """
    Abstract interface for landmark backends.

    Any detector (browser-side model, local model, cloud API) that can return
    68 landmarks plus expression confidences for a frame implements this.
    """

    @abstractmethod
    def detect(self, image: Any) -> LandmarkFrame:
        """
        Detect the primary face in an image.

        Returns:
            LandmarkFrame (face_detected=False when no face was found)
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def get_name(self) -> str:
        pass

    def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass


# ---------------------------------------------------------------------------
# Geometry helpers shared by the analyzers
# ---------------------------------------------------------------------------

def centroid(points: np.ndarray) -> np.ndarray:
    pts = np.asarray(points, dtype=np.float64)
    if pts.size == 0:
        return np.zeros(2)
    return pts[:, :2].mean(axis=0)


def distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)))


# EAR used when eye geometry is degenerate; above the blink threshold so it never counts as a blink.
OPEN_EYE_EAR = 0.3


def eye_aspect_ratio(eye: np.ndarray) -> float:
    """
    EAR for one eye (6 points: outer corner, two top, inner corner, two bottom).

    (|p1 - p5| + |p2 - p4|) / (2 * |p0 - p3|)
    """
    if len(eye) < 6:
        return OPEN_EYE_EAR
    horizontal = distance(eye[0], eye[3])
    if horizontal < 1e-6:
        return OPEN_EYE_EAR
    vertical = distance(eye[1], eye[5]) + distance(eye[2], eye[4])
    ear = vertical / (2.0 * horizontal)
    return float(ear) if np.isfinite(ear) else OPEN_EYE_EAR


def average_eye_aspect_ratio(left_eye: np.ndarray, right_eye: np.ndarray) -> float:
    return (eye_aspect_ratio(left_eye) + eye_aspect_ratio(right_eye)) / 2.0


def mouth_openness(mouth: np.ndarray) -> float:
    """Lip separation (top outer lip center to bottom outer lip center), 20 px -> 1.0."""
    if len(mouth) < 10:
        return 0.0
    vertical = abs(float(mouth[9][1]) - float(mouth[3][1]))
    return float(np.clip(vertical / 20.0, 0.0, 1.0))
