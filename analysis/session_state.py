"""
Per-session counters and buffers shared by the eye-tracking and behavioral analyzers.

One SessionState belongs to one detection session. Both analyzers read and advance
it every tick; nothing else should hold a reference. Call reset() whenever the
camera/session restarts so rates are not carried across sessions.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Tuple

import config


# (x, y, timestamp_sec)
Position = Tuple[float, float, float]


@dataclass
class SessionState:
    session_start: float = field(default_factory=time.time)
    buffer_size: int = config.POSITION_BUFFER_SIZE

    blink_count: int = 0
    last_blink_time: Optional[float] = None
    eye_contact_start: Optional[float] = None
    total_eye_contact_sec: float = 0.0
    smile_count: int = 0
    last_smile_time: Optional[float] = None
    response_times: List[float] = field(default_factory=list)

    gaze_positions: Deque[Position] = field(init=False)
    head_positions: Deque[Position] = field(init=False)

    # Throttle cache: last full analysis and when it ran
    last_analysis_time: Optional[float] = None
    cached_eye_tracking: Optional[object] = None
    cached_behavioral: Optional[object] = None

    def __post_init__(self):
        self.buffer_size = max(2, int(self.buffer_size))
        self.gaze_positions = deque(maxlen=self.buffer_size)
        self.head_positions = deque(maxlen=self.buffer_size)

    def reset(self, now: Optional[float] = None) -> None:
        """Clear all counters, buffers and the cached analysis; restart the session clock."""
        self.session_start = time.time() if now is None else float(now)
        self.blink_count = 0
        self.last_blink_time = None
        self.eye_contact_start = None
        self.total_eye_contact_sec = 0.0
        self.smile_count = 0
        self.last_smile_time = None
        self.response_times = []
        self.gaze_positions.clear()
        self.head_positions.clear()
        self.last_analysis_time = None
        self.cached_eye_tracking = None
        self.cached_behavioral = None

    def elapsed_minutes(self, now: float) -> float:
        """Session length in minutes, floored at 0.1 so early rates do not explode."""
        return max(0.1, (now - self.session_start) / 60.0)

    def record_response_time(self, seconds: float) -> None:
        """Hook for stimulus/response timing; nothing in the video pipeline fills it yet."""
        value = float(seconds)
        if value != value or value < 0:
            raise ValueError("response time must be a non-negative number of seconds")
        self.response_times.append(value)

    def is_cache_fresh(self, now: float, interval: float) -> bool:
        """True when a cached full analysis exists and is younger than interval seconds."""
        if self.last_analysis_time is None:
            return False
        if self.cached_eye_tracking is None or self.cached_behavioral is None:
            return False
        return (now - self.last_analysis_time) < interval

    def store_analysis(self, now: float, eye_tracking, behavioral) -> None:
        self.last_analysis_time = now
        self.cached_eye_tracking = eye_tracking
        self.cached_behavioral = behavioral
