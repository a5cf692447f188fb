"""
Detection records, confidence filtering and recyclable classification
"""

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Sequence


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in frame pixels, top-left origin"""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    def as_list(self) -> List[float]:
        return [self.x, self.y, self.width, self.height]


@dataclass(frozen=True)
class Detection:
    """One object reported by the model for the current frame"""
    category: str
    confidence: float
    bounding_box: BoundingBox

    @classmethod
    def from_prediction(cls, prediction: Dict) -> "Detection":
        """
        Build from the raw model shape {class, score, bbox: [x, y, w, h]}
        """
        x, y, width, height = prediction["bbox"]
        return cls(
            category=prediction["class"],
            confidence=float(prediction["score"]),
            bounding_box=BoundingBox(float(x), float(y), float(width), float(height))
        )


@dataclass(frozen=True)
class ClassifiedDetection:
    """Detection tagged as recyclable or not"""
    category: str
    confidence: float
    bounding_box: BoundingBox
    is_recyclable: bool

    @property
    def tag(self) -> str:
        return "Recyclable" if self.is_recyclable else "Not Recyclable"


def filter_detections(raw_detections: Iterable[Detection],
                      confidence_threshold: float,
                      excluded_categories: AbstractSet[str]) -> List[Detection]:
    """
    Drop low-confidence and excluded-category detections

    Args:
        raw_detections: Model output for one frame
        confidence_threshold: Minimum confidence, inclusive
        excluded_categories: Categories to always drop (case-insensitive)

    Returns:
        Surviving detections in their original order
    """
    excluded = {name.lower() for name in excluded_categories}
    return [
        detection for detection in raw_detections
        if detection.confidence >= confidence_threshold
        and detection.category.lower() not in excluded
    ]


def classify(detection: Detection, recyclable_categories: AbstractSet[str]) -> ClassifiedDetection:
    """
    Tag a detection as recyclable by case-insensitive category lookup.
    Any category outside the set is non-recyclable.
    """
    return _classify_lowered(detection, {name.lower() for name in recyclable_categories})


def _classify_lowered(detection: Detection, recyclable: AbstractSet[str]) -> ClassifiedDetection:
    return ClassifiedDetection(
        category=detection.category,
        confidence=detection.confidence,
        bounding_box=detection.bounding_box,
        is_recyclable=detection.category.lower() in recyclable
    )


def classify_all(detections: Sequence[Detection],
                 recyclable_categories: AbstractSet[str]) -> List[ClassifiedDetection]:
    recyclable = {name.lower() for name in recyclable_categories}
    return [_classify_lowered(detection, recyclable) for detection in detections]
