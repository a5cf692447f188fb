"""
COCO Object Detector
- YOLOv8 (ultralytics) pretrained on COCO, same label space as COCO-SSD
- Returns raw detections; thresholding and classification happen downstream
"""

import numpy as np
from typing import List, Dict, Optional
import logging
from pathlib import Path

try:
    from ultralytics import YOLO
    YOLO_AVAILABLE = True
except ImportError:
    YOLO_AVAILABLE = False

from .classifier import BoundingBox, Detection

DEFAULT_MODEL = "yolov8n.pt"


class ObjectDetector:
    """
    Object detection model wrapper.
    Stays not-ready when the model cannot be loaded; the pipeline then idles.
    """

    def __init__(self, model_path: Optional[str] = None, min_score: float = 0.1):
        """
        Initialize the detector

        Args:
            model_path: Path to a custom YOLO model, if None uses YOLOv8-nano
            min_score: Floor passed to the model; the pipeline applies the real threshold
        """
        self.model_path = model_path
        self.min_score = min_score
        self.yolo_model = None
        self.class_names: Dict[int, str] = {}
        self.status = "Loading AI model..."
        self.load_error: Optional[str] = None
        self.setup_logging()

    def setup_logging(self):
        """Setup logging for the detector"""
        self.logger = logging.getLogger(__name__)

    @property
    def is_ready(self) -> bool:
        return self.yolo_model is not None

    def load(self) -> bool:
        """
        Load the YOLO model

        Returns:
            True if the model is ready for inference
        """
        if not YOLO_AVAILABLE:
            self.setup_fallback_detector("ultralytics is not installed")
            return False

        try:
            if self.model_path and Path(self.model_path).exists():
                self.yolo_model = YOLO(self.model_path)
                self.logger.info(f"Loaded custom model from {self.model_path}")
            else:
                if self.model_path:
                    self.logger.warning(f"Model not found at {self.model_path}, using {DEFAULT_MODEL}")
                self.yolo_model = YOLO(DEFAULT_MODEL)
                self.logger.info(f"Loaded {DEFAULT_MODEL} model")

            self.class_names = dict(getattr(self.yolo_model, 'names', None) or {})
            self.logger.info(f"Model exposes {len(self.class_names)} classes")
            self.status = "Model loaded"
            return True

        except Exception as e:
            self.logger.error(f"Failed to load YOLO model: {e}")
            self.setup_fallback_detector(str(e))
            return False

    def setup_fallback_detector(self, reason: str):
        """Mark the model unavailable so the pipeline stays idle"""
        self.logger.warning(f"Detection model unavailable: {reason}")
        self.yolo_model = None
        self.load_error = reason
        self.status = "Failed to load model"

    def detect(self, image: np.ndarray) -> List[Detection]:
        """
        Run the model on one frame

        Args:
            image: Input frame as BGR numpy array

        Returns:
            Detections with [x, y, width, height] boxes, in model output order

        Raises:
            RuntimeError: if the model is not loaded
        """
        if self.yolo_model is None:
            raise RuntimeError("Detection model is not loaded")

        results = self.yolo_model(image, conf=self.min_score, verbose=False)
        return self.parse_results(results)

    def parse_results(self, results) -> List[Detection]:
        """Convert ultralytics results into Detection records"""
        detections = []

        for result in results:
            boxes = result.boxes
            if boxes is None:
                continue

            names = getattr(result, 'names', None) or self.class_names
            for box in boxes:
                class_id = int(box.cls[0])
                x1, y1, x2, y2 = (float(v) for v in box.xyxy[0].tolist())

                detections.append(Detection(
                    category=names.get(class_id, f"unknown_{class_id}"),
                    confidence=float(box.conf[0]),
                    bounding_box=BoundingBox.from_xyxy(x1, y1, x2, y2)
                ))

        return detections
