"""
Per-frame metrics: smoothed FPS plus recyclable counts and average confidence
"""

from dataclasses import dataclass, asdict
from typing import Dict, Sequence

from ..models.classifier import ClassifiedDetection

# Exponential moving average weights for FPS smoothing
FPS_HISTORY_WEIGHT = 0.7
FPS_SAMPLE_WEIGHT = 0.3
MIN_FRAME_DELTA_MS = 1.0


@dataclass
class FrameMetrics:
    """Aggregates for one processed frame"""
    recyclable_count: int
    non_recyclable_count: int
    total_count: int
    average_confidence: float
    instantaneous_fps: float
    smoothed_fps: float

    def to_event(self) -> Dict:
        """Published stats event"""
        return {
            "counts": {
                "recyclable": self.recyclable_count,
                "non": self.non_recyclable_count,
                "total": self.total_count
            },
            "avgOverall": self.average_confidence,
            "fps": self.instantaneous_fps
        }

    def to_dict(self) -> Dict:
        return asdict(self)


def average_confidence(detections: Sequence[ClassifiedDetection]) -> float:
    if not detections:
        return 0.0
    return sum(d.confidence for d in detections) / len(detections)


def smooth_fps(previous_smoothed_fps: float, instantaneous_fps: float) -> float:
    return previous_smoothed_fps * FPS_HISTORY_WEIGHT + instantaneous_fps * FPS_SAMPLE_WEIGHT


def estimate_metrics(previous_smoothed_fps: float, frame_delta_ms: float,
                     detections: Sequence[ClassifiedDetection]) -> FrameMetrics:
    """
    Compute metrics for the current frame

    Args:
        previous_smoothed_fps: Smoothed FPS after the previous frame
        frame_delta_ms: Milliseconds since the previous processed frame
        detections: Classified detections of this frame only

    Returns:
        FrameMetrics for this frame
    """
    instantaneous_fps = 1000.0 / max(frame_delta_ms, MIN_FRAME_DELTA_MS)
    recyclable = sum(1 for d in detections if d.is_recyclable)

    return FrameMetrics(
        recyclable_count=recyclable,
        non_recyclable_count=len(detections) - recyclable,
        total_count=len(detections),
        average_confidence=average_confidence(detections),
        instantaneous_fps=instantaneous_fps,
        smoothed_fps=smooth_fps(previous_smoothed_fps, instantaneous_fps)
    )


class MetricsEstimator:
    """Carries the smoothed FPS across frames"""

    def __init__(self, initial_fps: float = 0.0):
        self.smoothed_fps = initial_fps

    def update(self, frame_delta_ms: float,
               detections: Sequence[ClassifiedDetection]) -> FrameMetrics:
        metrics = estimate_metrics(self.smoothed_fps, frame_delta_ms, detections)
        self.smoothed_fps = metrics.smoothed_fps
        return metrics
