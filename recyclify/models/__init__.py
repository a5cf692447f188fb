"""
Models package initialization
"""

from .classifier import (BoundingBox, ClassifiedDetection, Detection,
                         classify, classify_all, filter_detections)
from .detector import ObjectDetector

__all__ = ['BoundingBox', 'ClassifiedDetection', 'Detection', 'ObjectDetector',
           'classify', 'classify_all', 'filter_detections']
