"""
Overlay renderer
Draws detection boxes and labels onto a transparent BGRA surface aligned to the video frame
"""

import cv2
import logging
import math
import numpy as np
from typing import Optional, Sequence, Tuple

from ..config import DEFAULT_FALLBACK_SIZE
from ..models.classifier import ClassifiedDetection

# BGRA colors
RECYCLABLE_COLOR = (138, 197, 16, 255)       # #10c58a
NON_RECYCLABLE_COLOR = (68, 68, 239, 255)    # #ef4444
LABEL_BACKGROUND = (0, 0, 0, 140)            # black at 55% opacity

BOX_THICKNESS = 3
FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.5
FONT_THICKNESS = 1
LABEL_PADDING = 6
LABEL_HEIGHT = 22


def percent(confidence: float) -> int:
    """Rounded percentage, halves round up"""
    return int(math.floor(confidence * 100 + 0.5))


def format_label(detection: ClassifiedDetection) -> str:
    """Label text: category, rounded percentage and recyclable tag"""
    return f"{detection.category} {percent(detection.confidence)}% - {detection.tag}"


class OverlayRenderer:
    """
    Owns the overlay surface. Every render clears it and redraws the
    current frame's detections, so nothing accumulates across frames.
    """

    def __init__(self, fallback_size: Tuple[int, int] = DEFAULT_FALLBACK_SIZE):
        self.fallback_size = fallback_size
        width, height = fallback_size
        self.surface = np.zeros((height, width, 4), dtype=np.uint8)
        self.setup_logging()

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    @property
    def size(self) -> Tuple[int, int]:
        """Current surface (width, height)"""
        return self.surface.shape[1], self.surface.shape[0]

    def _resolve_size(self, surface_dimensions: Optional[Tuple[int, int]]) -> Tuple[int, int]:
        if not surface_dimensions:
            return self.fallback_size
        width, height = surface_dimensions
        if not width or not height:
            return self.fallback_size
        return int(width), int(height)

    def render(self, surface_dimensions: Optional[Tuple[int, int]],
               detections: Sequence[ClassifiedDetection]):
        """
        Redraw the overlay for one frame

        Args:
            surface_dimensions: Frame (width, height); zero or None uses the fallback size
            detections: Classified detections, drawn in list order
        """
        width, height = self._resolve_size(surface_dimensions)

        if self.size != (width, height):
            self.logger.debug(f"Resizing overlay surface to {width}x{height}")
            self.surface = np.zeros((height, width, 4), dtype=np.uint8)
        else:
            self.surface.fill(0)

        for detection in detections:
            self._draw_detection(detection)

    def _draw_detection(self, detection: ClassifiedDetection):
        box = detection.bounding_box
        x, y = int(round(box.x)), int(round(box.y))
        x2, y2 = int(round(box.x + box.width)), int(round(box.y + box.height))
        color = RECYCLABLE_COLOR if detection.is_recyclable else NON_RECYCLABLE_COLOR

        cv2.rectangle(self.surface, (x, y), (x2, y2), color, BOX_THICKNESS)

        # Label box sits just above the bounding box, never above row 0
        text = format_label(detection)
        (text_width, _), _ = cv2.getTextSize(text, FONT, FONT_SCALE, FONT_THICKNESS)
        label_top = max(0, y - LABEL_HEIGHT)
        label_width = text_width + LABEL_PADDING * 2

        cv2.rectangle(self.surface, (x, label_top),
                      (x + label_width, label_top + LABEL_HEIGHT),
                      LABEL_BACKGROUND, cv2.FILLED)
        cv2.putText(self.surface, text, (x + LABEL_PADDING, label_top + LABEL_HEIGHT - 6),
                    FONT, FONT_SCALE, color, FONT_THICKNESS, cv2.LINE_AA)

    def compose(self, frame: np.ndarray) -> np.ndarray:
        """
        Blend the overlay onto a BGR frame for display

        Args:
            frame: Video frame; the overlay is scaled to it if sizes differ

        Returns:
            New BGR image with the overlay applied
        """
        surface = self.surface
        height, width = frame.shape[:2]
        if surface.shape[:2] != (height, width):
            surface = cv2.resize(surface, (width, height), interpolation=cv2.INTER_NEAREST)

        alpha = surface[:, :, 3:4].astype(np.float32) / 255.0
        blended = frame.astype(np.float32) * (1.0 - alpha) + surface[:, :, :3].astype(np.float32) * alpha
        return blended.astype(np.uint8)
