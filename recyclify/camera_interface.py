"""
Camera Interface for the live detection feed
Supports Pi Camera, USB cameras, video files and simulated mode for development
"""

import cv2
import numpy as np
from typing import Optional, Tuple, Union
import logging
import time
import os
from pathlib import Path
import random

try:
    from picamera2 import Picamera2
    PICAMERA2_AVAILABLE = True
except ImportError:
    PICAMERA2_AVAILABLE = False

VIDEO_EXTENSIONS = ('.mp4', '.avi', '.mov', '.mkv')


class CameraInterface:
    """
    Unified video source:
    - Raspberry Pi Camera (via picamera2)
    - USB/Webcam (via OpenCV)
    - Video file, looped
    - Simulated mode cycling sample images
    """

    def __init__(self, source: Union[str, int] = 'auto', resolution=(640, 480), fps=30,
                 sample_dir: Optional[str] = None):
        """
        Initialize camera interface

        Args:
            source: 'auto', 'pi', 'usb', 'simulated', video file path, or device index
            resolution: (width, height) tuple
            fps: Target frames per second
            sample_dir: Directory of .jpg images for simulated mode
        """
        self.resolution = tuple(resolution)
        self.fps = fps
        self.camera = None
        self.camera_type = None
        self.last_frame: Optional[np.ndarray] = None
        self.last_frame_size: Tuple[int, int] = (0, 0)
        self.sample_dir = Path(sample_dir) if sample_dir else Path("data") / "samples"

        self.setup_logging()
        self.setup_sample_images()

        if source == 'auto':
            self.auto_detect_camera()
        else:
            self.setup_camera(source)

    def setup_logging(self):
        """Setup logging for camera interface"""
        self.logger = logging.getLogger(__name__)

    def setup_sample_images(self):
        """Load sample images for simulated mode"""
        self.sample_images = []

        if not self.sample_dir.is_dir():
            return

        for img_path in sorted(self.sample_dir.glob("*.jpg")):
            img = cv2.imread(str(img_path))
            if img is None:
                self.logger.warning(f"Failed to load sample image {img_path}")
                continue
            self.sample_images.append(cv2.resize(img, self.resolution))
            self.logger.debug(f"Loaded sample image: {img_path.name}")

    def auto_detect_camera(self):
        """Automatically detect available camera"""
        if PICAMERA2_AVAILABLE and self._test_pi_camera():
            self.setup_camera('pi')
        elif self._test_usb_camera():
            self.setup_camera('usb')
        else:
            self.logger.warning("No cameras detected, using simulation mode")
            self.setup_camera('simulated')

    def _test_pi_camera(self) -> bool:
        """Test if Pi camera is available"""
        try:
            picam2 = Picamera2()
            picam2.configure(picam2.create_preview_configuration())
            picam2.start()
            time.sleep(0.1)
            picam2.stop()
            picam2.close()
            return True
        except Exception:
            return False

    def _test_usb_camera(self) -> bool:
        """Test if USB camera is available"""
        cap = cv2.VideoCapture(0)
        try:
            if not cap.isOpened():
                return False
            ret, frame = cap.read()
            return ret and frame is not None
        finally:
            cap.release()

    def setup_camera(self, source):
        """Setup camera based on source type"""
        try:
            if source == 'pi' and PICAMERA2_AVAILABLE:
                self._setup_pi_camera()
            elif source == 'usb' or isinstance(source, int):
                self._setup_usb_camera(source)
            elif isinstance(source, str) and (source.lower().endswith(VIDEO_EXTENSIONS) or os.path.exists(source)):
                self._setup_video_file(source)
            else:
                self._setup_simulated_camera()
        except Exception as e:
            self.logger.error(f"Failed to setup camera {source}: {e}")
            self._setup_simulated_camera()

    def _setup_pi_camera(self):
        """Setup Raspberry Pi camera"""
        self.camera = Picamera2()
        config = self.camera.create_preview_configuration(
            main={"size": self.resolution, "format": "RGB888"}
        )
        self.camera.configure(config)
        self.camera.start()
        self.camera_type = 'pi'
        self.logger.info("Pi Camera initialized successfully")
        time.sleep(2)  # sensor warm-up

    def _setup_usb_camera(self, source='usb'):
        """Setup USB/webcam"""
        device_id = 0 if source == 'usb' else source
        self.camera = cv2.VideoCapture(device_id)
        self.camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.resolution[0])
        self.camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.resolution[1])
        self.camera.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.camera.isOpened():
            raise RuntimeError(f"Failed to open camera {device_id}")

        self.camera_type = 'usb'
        self.logger.info(f"USB Camera {device_id} initialized successfully")

    def _setup_simulated_camera(self):
        """Setup simulated camera mode"""
        self.camera = None
        self.camera_type = 'simulated'
        if not self.sample_images:
            self.logger.warning(f"No sample images in {self.sample_dir}; simulated frames unavailable")
        self.logger.info("Simulated camera mode initialized")

    def _setup_video_file(self, video_path):
        """Setup video file as camera source"""
        if not os.path.exists(video_path):
            raise FileNotFoundError(f"Video file not found: {video_path}")

        self.camera = cv2.VideoCapture(video_path)
        if not self.camera.isOpened():
            raise RuntimeError(f"Could not open video file: {video_path}")

        self.camera_type = 'video'
        self.video_path = video_path
        self.logger.info(f"Video file initialized: {video_path} "
                         f"({int(self.camera.get(cv2.CAP_PROP_FRAME_COUNT))} frames)")

    @property
    def is_ready(self) -> bool:
        """True once the source can deliver frames"""
        if self.camera_type == 'simulated':
            return bool(self.sample_images)
        return self.camera is not None

    @property
    def frame_size(self) -> Tuple[int, int]:
        """(width, height) of the last captured frame, (0, 0) before the first one"""
        return self.last_frame_size

    def capture_frame(self) -> Optional[np.ndarray]:
        """
        Capture a single frame

        Returns:
            BGR image as numpy array or None if no frame is available
        """
        try:
            if self.camera_type == 'pi':
                frame = cv2.cvtColor(self.camera.capture_array(), cv2.COLOR_RGB2BGR)
            elif self.camera_type == 'usb':
                ret, frame = self.camera.read()
                frame = frame if ret else None
            elif self.camera_type == 'video':
                frame = self._capture_video_frame()
            else:
                frame = self._capture_simulated_frame()
        except Exception as e:
            self.logger.error(f"Frame capture failed: {e}")
            return None

        if frame is not None:
            self.last_frame = frame
            self.last_frame_size = (frame.shape[1], frame.shape[0])
        return frame

    def _capture_video_frame(self) -> Optional[np.ndarray]:
        """Read the next video frame, looping at the end"""
        ret, frame = self.camera.read()
        if ret:
            return frame

        self.camera.set(cv2.CAP_PROP_POS_FRAMES, 0)
        ret, frame = self.camera.read()
        return frame if ret else None

    def _capture_simulated_frame(self) -> Optional[np.ndarray]:
        """Random sample image with slight noise to mimic a live feed"""
        if not self.sample_images:
            return None

        base_img = random.choice(self.sample_images)
        noise = np.random.randint(-5, 5, base_img.shape, dtype=np.int16)
        return np.clip(base_img.astype(np.int16) + noise, 0, 255).astype(np.uint8)

    def get_camera_info(self) -> dict:
        """Get camera information"""
        return {
            "type": self.camera_type,
            "resolution": self.resolution,
            "fps": self.fps,
            "frame_size": self.last_frame_size,
            "available": self.is_ready
        }

    def release(self):
        """Release camera resources"""
        try:
            if self.camera_type == 'pi' and self.camera:
                self.camera.stop()
                self.camera.close()
            elif self.camera_type in ('usb', 'video') and self.camera:
                self.camera.release()

            self.camera = None
            self.logger.info("Camera resources released")
        except Exception as e:
            self.logger.error(f"Failed to release camera: {e}")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.release()
