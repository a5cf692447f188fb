"""
Frame scheduler
Drives the detection loop: frame -> model -> filter -> classify -> overlay/metrics -> publish
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from .config import PipelineConfig
from .models.classifier import classify_all, filter_detections
from .utils.metrics import FrameMetrics, MetricsEstimator
from .utils.overlay import OverlayRenderer
from .utils.stats_publisher import StatsPublisher

TickSource = Callable[[], Awaitable[None]]


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass
class PipelineState:
    """Mutable loop state, written only by the scheduler"""
    running: bool = True
    last_frame_timestamp: Optional[float] = None


class FrameScheduler:
    """
    Cooperative detection loop running as a single asyncio task.

    Inference runs in a worker thread and is awaited inline, so at most one
    inference is in flight. While paused the loop keeps ticking but does no
    work. stop() cancels the pending tick; an inference already running is
    left to finish and its result is thrown away.
    """

    def __init__(self, detector, camera, config: Optional[PipelineConfig] = None,
                 renderer: Optional[OverlayRenderer] = None,
                 publisher: Optional[StatsPublisher] = None,
                 metrics: Optional[MetricsEstimator] = None,
                 tick: Optional[TickSource] = None,
                 clock: Callable[[], float] = time.perf_counter):
        """
        Initialize the scheduler

        Args:
            detector: Object with is_ready and detect(frame) -> list of Detection
            camera: Object with is_ready, frame_size and capture_frame()
            config: Pipeline tuning, defaults to PipelineConfig()
            renderer: Overlay renderer, created from config if omitted
            publisher: Stats publisher, created if omitted
            metrics: Metrics estimator holding the smoothed FPS
            tick: Awaitable factory paced to the display refresh; defaults to a sleep
            clock: Monotonic seconds, used for frame deltas
        """
        self.detector = detector
        self.camera = camera
        self.config = config or PipelineConfig()
        self.renderer = renderer or OverlayRenderer(self.config.fallback_size)
        self.publisher = publisher or StatsPublisher()
        self.metrics = metrics or MetricsEstimator()
        self._tick = tick or self._sleep_tick
        self._clock = clock

        self.state = SchedulerState.IDLE
        self.pipeline_state = PipelineState()
        self.last_metrics: Optional[FrameMetrics] = None
        self.frames_processed = 0
        self.frames_failed = 0
        # Bumped by every pause() so inferences started before it can be recognised
        self.pause_generation = 0

        self._stop_event: Optional[asyncio.Event] = None
        self.setup_logging()

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    async def _sleep_tick(self):
        await asyncio.sleep(self.config.tick_interval)

    @property
    def running(self) -> bool:
        return self.pipeline_state.running

    @property
    def is_stopped(self) -> bool:
        return self.state is SchedulerState.STOPPED

    def pause(self):
        """Suspend inference, rendering and publishing; the loop keeps ticking"""
        if self.is_stopped:
            return
        self.pipeline_state.running = False
        self.pause_generation += 1
        if self.state is SchedulerState.RUNNING:
            self.state = SchedulerState.PAUSED
        self.logger.info("Detection paused")

    def resume(self):
        """Resume processing on the next tick"""
        if self.is_stopped:
            return
        self.pipeline_state.running = True
        # Measure the next frame delta from now, not from before the pause
        self.pipeline_state.last_frame_timestamp = self._clock()
        if self.state is SchedulerState.PAUSED:
            self.state = SchedulerState.RUNNING
        self.logger.info("Detection resumed")

    def toggle(self) -> bool:
        """
        Flip between running and paused

        Returns:
            The new running flag
        """
        if self.running:
            self.pause()
        else:
            self.resume()
        return self.running

    def stop(self):
        """Stop the loop for good"""
        if self.is_stopped:
            return
        self.state = SchedulerState.STOPPED
        if self._stop_event is not None:
            self._stop_event.set()
        self.logger.info("Frame scheduler stopped")

    async def run(self):
        """Run until stop() is called"""
        self._stop_event = asyncio.Event()
        if self.is_stopped:
            return

        self.logger.info("Frame scheduler started, waiting for model and video source")

        while not self.is_stopped:
            if self.state is SchedulerState.IDLE:
                self._check_ready()
            elif self.running:
                await self.process_frame()

            if not await self._next_tick():
                break

        self.logger.info(f"Frame scheduler exited after {self.frames_processed} frames")

    def _check_ready(self):
        if self.detector.is_ready and self.camera.is_ready:
            self.state = SchedulerState.RUNNING if self.running else SchedulerState.PAUSED
            self.pipeline_state.last_frame_timestamp = self._clock()
            self.logger.info(f"Model and video source ready, scheduler {self.state.value}")

    async def _next_tick(self) -> bool:
        """
        Wait for the next tick or for stop()

        Returns:
            False if the scheduler was stopped while waiting
        """
        if self.is_stopped:
            return False

        tick = asyncio.ensure_future(self._tick())
        stopped = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({tick, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for pending in (tick, stopped):
                if not pending.done():
                    pending.cancel()

        if tick.done() and not tick.cancelled() and tick.exception() is not None:
            self.logger.error(f"Tick source failed: {tick.exception()}")
        return not self.is_stopped

    async def process_frame(self) -> Optional[FrameMetrics]:
        """
        One pipeline iteration

        Returns:
            Metrics published for the frame, or None if the frame was skipped
        """
        frame = self.camera.capture_frame()
        if frame is None:
            self.logger.debug("No frame available, skipping")
            return None

        generation = self.pause_generation
        try:
            raw_detections = await asyncio.to_thread(self.detector.detect, frame)
        except Exception as e:
            self.frames_failed += 1
            self.logger.error(f"Inference failed, skipping frame: {e}")
            return None

        # Result of an inference that outlived stop() or any pause, resumed or not, is discarded
        if self.is_stopped or not self.running or generation != self.pause_generation:
            self.logger.debug("Discarding inference result, pipeline no longer running")
            return None

        accepted = filter_detections(raw_detections, self.config.confidence_threshold,
                                     self.config.excluded_categories)
        classified = classify_all(accepted, self.config.recyclable_categories)

        self.renderer.render(self.camera.frame_size, classified)

        now = self._clock()
        previous = self.pipeline_state.last_frame_timestamp
        self.pipeline_state.last_frame_timestamp = now
        delta_ms = (now - previous) * 1000.0 if previous is not None else 0.0

        metrics = self.metrics.update(delta_ms, classified)
        self.last_metrics = metrics
        self.frames_processed += 1

        self.publisher.publish(metrics)
        return metrics

    def get_status(self) -> dict:
        """Current scheduler status"""
        return {
            "state": self.state.value,
            "running": self.running,
            "frames_processed": self.frames_processed,
            "frames_failed": self.frames_failed,
            "smoothed_fps": self.metrics.smoothed_fps,
            "model_status": getattr(self.detector, "status", None)
        }
