import asyncio
import threading

import numpy as np
import pytest

from recyclify.config import PipelineConfig
from recyclify.models.classifier import BoundingBox, ClassifiedDetection, Detection
from recyclify.scheduler import FrameScheduler


def make_detection(category, confidence, bbox=(0, 0, 10, 10)):
    return Detection(category=category, confidence=confidence, bounding_box=BoundingBox(*bbox))


def make_classified(category, confidence, recyclable, bbox=(0, 0, 10, 10)):
    return ClassifiedDetection(category=category, confidence=confidence,
                               bounding_box=BoundingBox(*bbox), is_recyclable=recyclable)


class FakeDetector:
    """Returns scripted results; an Exception instance in the script is raised"""

    def __init__(self, results=None, ready=True):
        self.results = list(results or [])
        self.is_ready = ready
        self.status = "Model loaded" if ready else "Failed to load model"
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        result = self.results.pop(0) if self.results else []
        if isinstance(result, Exception):
            raise result
        return result


class BlockingDetector(FakeDetector):
    """Blocks inside detect until released, to hold an inference in flight"""

    def __init__(self, results=None):
        super().__init__(results)
        self.entered = threading.Event()
        self.release = threading.Event()

    def detect(self, frame):
        self.entered.set()
        self.release.wait(timeout=5)
        return super().detect(frame)


class FakeCamera:
    def __init__(self, size=(320, 240), ready=True, frames=True):
        self.size = size
        self.is_ready = ready
        self.frames = frames
        self.frame_size = (0, 0)

    def capture_frame(self):
        if not self.frames:
            return None
        width, height = self.size
        self.frame_size = self.size
        return np.zeros((height, width, 3), dtype=np.uint8)


class ScriptedTicks:
    """
    Tick source running an action on given tick numbers and stopping the
    scheduler once the limit is reached.
    """

    def __init__(self, actions=None, limit=10):
        self.actions = actions or {}
        self.limit = limit
        self.count = 0
        self.scheduler = None

    async def __call__(self):
        self.count += 1
        action = self.actions.get(self.count)
        if action:
            action(self.scheduler)
        if self.count >= self.limit:
            self.scheduler.stop()
        await asyncio.sleep(0)


def build_scheduler(detector, camera=None, ticks=None, config=None, clock=None):
    ticks = ticks or ScriptedTicks()
    kwargs = {"clock": clock} if clock else {}
    scheduler = FrameScheduler(detector, camera or FakeCamera(),
                               config=config or PipelineConfig(), tick=ticks, **kwargs)
    ticks.scheduler = scheduler
    events = []
    scheduler.publisher.subscribe(events.append)
    return scheduler, events


def run_scheduler(scheduler, timeout=5.0):
    asyncio.run(asyncio.wait_for(scheduler.run(), timeout))


@pytest.fixture
def pipeline_config():
    return PipelineConfig()
