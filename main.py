#!/usr/bin/env python3
"""
Recyclify - Main Application
Real-time recyclable object detection on a live camera feed

This script wires all components together:
- Camera interface for frame capture
- YOLOv8-nano COCO detection model
- Frame scheduler: filter, classify, overlay, metrics
- Stats publisher with a periodic stats logger
- Optional preview window ('p' pause/resume, 'q' quit)

Usage:
    python main.py [--config config.json] [--source 0|video.mp4|simulated] [--display] [--debug]
"""

import argparse
import asyncio
import logging
import signal
import time
from pathlib import Path
from typing import Optional, Dict, Any

import cv2

from recyclify.camera_interface import CameraInterface
from recyclify.config import PipelineConfig, load_config
from recyclify.models.detector import ObjectDetector
from recyclify.scheduler import FrameScheduler, SchedulerState
from recyclify.utils.overlay import OverlayRenderer
from recyclify.utils.stats_publisher import StatsPublisher

WINDOW_TITLE = "Recyclify (p: pause/resume, q: quit)"


class StatsLogger:
    """Stats subscriber that logs the latest event at a fixed interval"""

    def __init__(self, interval_seconds: float = 10.0, clock=time.monotonic):
        self.interval = interval_seconds
        self.clock = clock
        self.last_logged = None
        self.latest: Optional[Dict] = None
        self.logger = logging.getLogger(__name__)

    def __call__(self, event: Dict):
        self.latest = event
        now = self.clock()
        if self.last_logged is not None and (now - self.last_logged) < self.interval:
            return

        self.last_logged = now
        counts = event["counts"]
        self.logger.info(
            f"Stats - recyclable: {counts['recyclable']}, "
            f"non-recyclable: {counts['non']}, total: {counts['total']}, "
            f"avg confidence: {event['avgOverall']:.2f}, fps: {event['fps']:.1f}"
        )


class RecyclifySystem:
    """
    Main detection application
    Owns the components and runs the scheduler (plus optional preview) on one event loop
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the application

        Args:
            config: Configuration dictionary
        """
        self.config = config
        self.pipeline_config = PipelineConfig.from_dict(config.get('pipeline', {}))
        self.setup_logging()

        self.camera = None
        self.detector = None
        self.renderer = None
        self.publisher = None
        self.scheduler = None
        self.stats_logger = None
        self.start_time = None

        self.logger.info("Recyclify initialized")

    def setup_logging(self):
        """Setup logging configuration"""
        log_level = getattr(logging, self.config.get('log_level', 'INFO'))
        log_dir = Path(self.config.get('log_dir', 'logs'))
        log_dir.mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(log_dir / 'recyclify.log')
            ]
        )

        self.logger = logging.getLogger(__name__)

    def initialize_components(self):
        """Initialize all components; the model is loaded later, off the event loop"""
        try:
            self.logger.info("Initializing components...")

            camera_config = self.config.get('camera', {})
            self.camera = CameraInterface(
                source=camera_config.get('source', 'auto'),
                resolution=tuple(camera_config.get('resolution', [640, 480])),
                fps=camera_config.get('fps', 30),
                sample_dir=camera_config.get('sample_dir')
            )

            detector_config = self.config.get('detector', {})
            self.detector = ObjectDetector(
                model_path=detector_config.get('model_path'),
                min_score=detector_config.get('min_score', 0.1)
            )

            self.renderer = OverlayRenderer(self.pipeline_config.fallback_size)
            self.publisher = StatsPublisher()
            self.stats_logger = StatsLogger(self.config.get('stats_log_interval_seconds', 10.0))
            self.publisher.subscribe(self.stats_logger)

            self.scheduler = FrameScheduler(
                detector=self.detector,
                camera=self.camera,
                config=self.pipeline_config,
                renderer=self.renderer,
                publisher=self.publisher
            )

            self.logger.info("All components initialized successfully")

        except Exception as e:
            self.logger.error(f"Failed to initialize components: {e}")
            raise

    async def run(self, display: bool = False):
        """Run until stopped; model load failures leave the pipeline idle"""
        self.initialize_components()
        self.start_time = time.time()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # add_signal_handler is unavailable on some platforms
                pass

        tasks = [asyncio.create_task(self.scheduler.run()),
                 asyncio.create_task(self._load_model())]
        if display:
            tasks.append(asyncio.create_task(self._display_loop()))

        try:
            await tasks[0]
        finally:
            for task in tasks[1:]:
                task.cancel()
            await asyncio.gather(*tasks[1:], return_exceptions=True)
            self.shutdown()

    async def _load_model(self):
        """Load the detection model in a worker thread"""
        self.logger.info(self.detector.status)
        loaded = await asyncio.to_thread(self.detector.load)
        if loaded:
            self.logger.info(self.detector.status)
        else:
            self.logger.error(f"{self.detector.status}: {self.detector.load_error}")

    async def _display_loop(self):
        """Preview window: camera frame with the current overlay and status line"""
        interval = self.pipeline_config.tick_interval
        try:
            while not self.scheduler.is_stopped:
                # Share the scheduler's frames while it runs so file sources are not read twice
                if self.scheduler.state is SchedulerState.RUNNING:
                    frame = self.camera.last_frame
                else:
                    frame = self.camera.capture_frame()
                if frame is not None:
                    view = self.renderer.compose(frame)
                    cv2.putText(view, self.status_line(), (10, 20),
                                cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
                    cv2.imshow(WINDOW_TITLE, view)

                key = cv2.waitKey(1) & 0xFF
                if key == ord('p'):
                    self.scheduler.toggle()
                elif key == ord('q'):
                    self.stop()
                    break

                await asyncio.sleep(interval)
        finally:
            cv2.destroyAllWindows()

    def status_line(self) -> str:
        """Status message shown to the user"""
        if self.scheduler is None:
            return "Starting..."
        if not self.camera.is_ready:
            return "Camera unavailable"

        state = self.scheduler.state.value
        return f"{self.detector.status} | {state} | {round(self.scheduler.metrics.smoothed_fps)} fps"

    def stop(self):
        """Request shutdown"""
        if self.scheduler:
            self.scheduler.stop()

    def shutdown(self):
        """Release resources and log final statistics"""
        if self.camera:
            self.camera.release()
        self._log_final_statistics()
        self.logger.info("Recyclify stopped")

    def _log_final_statistics(self):
        """Log final statistics on shutdown"""
        if not self.start_time or not self.scheduler:
            return

        runtime_minutes = (time.time() - self.start_time) / 60.0
        self.logger.info(
            f"Final Stats - Runtime: {runtime_minutes:.1f}min, "
            f"Frames processed: {self.scheduler.frames_processed}, "
            f"Failed inferences: {self.scheduler.frames_failed}, "
            f"Events published: {self.publisher.published_count}"
        )

    def get_status(self) -> Dict:
        """Get current system status"""
        if self.scheduler is None:
            return {"status": "stopped"}

        return {
            "status": self.scheduler.state.value,
            "uptime_minutes": (time.time() - self.start_time) / 60.0 if self.start_time else 0,
            "scheduler": self.scheduler.get_status(),
            "camera": self.camera.get_camera_info(),
            "latest_stats": self.stats_logger.latest
        }


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Recyclify real-time recyclable detection")
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--source', help="Video source: auto, pi, usb, simulated, device index or video file")
    parser.add_argument('--simulate', '-s', action='store_true',
                        help='Force simulation mode')
    parser.add_argument('--threshold', '-t', type=float,
                        help='Confidence threshold in (0, 1]')
    parser.add_argument('--display', action='store_true',
                        help='Show preview window')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')
    return parser.parse_args(argv)


def apply_overrides(config: Dict[str, Any], args) -> Dict[str, Any]:
    """Apply command line overrides to the loaded configuration"""
    if args.simulate:
        config['camera']['source'] = 'simulated'
    elif args.source:
        config['camera']['source'] = int(args.source) if args.source.isdigit() else args.source

    if args.threshold is not None:
        config['pipeline']['confidence_threshold'] = args.threshold
    if args.display:
        config['display'] = True
    if args.debug:
        config['log_level'] = 'DEBUG'
    return config


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    config = apply_overrides(load_config(args.config), args)

    system = RecyclifySystem(config)

    print("Starting Recyclify...")
    print(f"Camera source: {config['camera']['source']}")
    print(f"Confidence threshold: {system.pipeline_config.confidence_threshold}")
    print("Press Ctrl+C to stop")

    try:
        asyncio.run(system.run(display=config.get('display', False)))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")


if __name__ == "__main__":
    main()
