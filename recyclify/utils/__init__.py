"""
Utilities package initialization
"""

from .metrics import FrameMetrics, MetricsEstimator, estimate_metrics
from .overlay import OverlayRenderer
from .stats_publisher import StatsPublisher

__all__ = ['FrameMetrics', 'MetricsEstimator', 'estimate_metrics',
           'OverlayRenderer', 'StatsPublisher']
